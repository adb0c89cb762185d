from app.models.entities import AuditLog, Author, IdempotencyKey, Post, PostStatus

__all__ = ["AuditLog", "Author", "IdempotencyKey", "Post", "PostStatus"]

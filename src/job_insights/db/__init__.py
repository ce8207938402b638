from .repository import DatabaseConnectionError, DatabaseError, DuplicateJobError, JobRepository

__all__ = ["DatabaseConnectionError", "DatabaseError", "DuplicateJobError", "JobRepository"]

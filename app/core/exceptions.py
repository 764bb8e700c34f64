from fastapi import HTTPException, status

class BaseAppException(HTTPException):
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

class ValidationError(BaseAppException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class ConflictError(BaseAppException):
    """Concurrent modification detected; the caller should refetch and retry"""
    def __init__(self, detail: str = "Resource was modified concurrently, reload and retry"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class DependencyError(BaseAppException):
    """A collaborator (batch store, mail gateway) failed; safe to retry"""
    def __init__(self, detail: str = "A downstream service is unavailable, please retry"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)

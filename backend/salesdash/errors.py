"""
Callable-function style errors.

Invite and user-administration endpoints report failures with a fixed code
and a localized message, mirroring the Firebase callable protocol.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse

FUNCTION_ERROR_STATUS = {
    "invalid-argument": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "permission-denied": status.HTTP_403_FORBIDDEN,
    "not-found": status.HTTP_404_NOT_FOUND,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class FunctionsError(Exception):

    def __init__(self, code: str, message: str):
        if code not in FUNCTION_ERROR_STATUS:
            raise ValueError(f"Unknown function error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def status_code(self) -> int:
        return FUNCTION_ERROR_STATUS[self.code]


async def functions_error_handler(request: Request, exc: FunctionsError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"status": exc.code.upper().replace("-", "_"), "message": exc.message}},
    )

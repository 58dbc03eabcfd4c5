class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, payload=None):
        super().__init__(message)
        self.message = str(message)
        self.status_code = status_code
        self.payload = payload


class AuthenticationError(ApiError):
    pass


class NetworkError(ApiError):
    pass

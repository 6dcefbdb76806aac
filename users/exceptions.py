"""
users/exceptions.py -- Domain errors raised by UserService.

Each error carries the client-facing message as its str(). The HTTP status
for each class is decided in api/main.py, not here.
"""


class UserError(Exception):
    """Base class for every user-account rule violation."""

    message = "Solicitud inválida"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class EmailAlreadyRegisteredError(UserError):
    message = "El correo ya registrado"


class InvalidEmailFormatError(UserError):
    message = "formato incorrecto"


class InvalidPasswordFormatError(UserError):
    message = "formato de contraseña incorrecto"


class NoChangesError(UserError):
    message = "No hay campos para actualizar"


class InvalidCredentialsError(UserError):
    message = "Credenciales inválidas"


class UserNotFoundError(UserError):
    message = "Usuario no encontrado"

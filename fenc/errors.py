class FencError(Exception):
    """Base class for FEnc-specific errors."""


# Header/format related
class FormatError(FencError):
    pass


class NotEncryptedError(FormatError):
    pass


class AlreadyEncryptedError(FormatError):
    pass


# Cipher setup
class AlgorithmError(FencError):
    pass

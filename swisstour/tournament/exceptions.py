from django.core.exceptions import ImproperlyConfigured, ObjectDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError


class SwissTourError(Exception):
    pass


class NotFoundError(SwissTourError, ObjectDoesNotExist):
    pass


class ValidationError(SwissTourError, DjangoValidationError):
    def __init__(self, message, code=None, params=None):
        DjangoValidationError.__init__(self, message, code=code, params=params)

    def __str__(self):
        return "; ".join(self.messages)


class ConfigurationError(SwissTourError, ImproperlyConfigured):
    pass


class EngineExecutionError(SwissTourError):
    def __init__(self, message, returncode=None, stdout="", stderr=""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""

    def __str__(self):
        details = [self.args[0]]
        if self.stderr.strip():
            details.append("stderr: %s" % self.stderr.strip())
        if self.stdout.strip():
            details.append("stdout: %s" % self.stdout.strip())
        return "\n".join(details)


class ParseError(SwissTourError):
    pass

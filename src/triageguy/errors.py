class TriageError(Exception):
    """Base class for every failure raised while building a crash report."""


class ClassNotFound(TriageError):
    """No execution class matches the requested name. Recoverable: the report keeps `Undefined`."""

    def __init__(self, short_name: str):
        super().__init__(f"Couldn't find class {short_name} by name.")
        self.short_name = short_name


class StackTraceNotFound(TriageError):
    pass


class StackTraceEndNotFound(TriageError):
    pass


class NoCrashDetected(TriageError):
    pass


class TargetOutOfMemory(TriageError):
    pass


class ExternalToolFailure(TriageError):
    pass


class CrashLineUnresolved(TriageError):
    pass


class PersistenceFailure(TriageError):
    pass


class ConfigError(TriageError):
    pass

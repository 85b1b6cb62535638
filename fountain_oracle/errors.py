"""Oracle error types"""


class OracleError(Exception):
    """Base exception for daily oracle errors"""
    pass


class InputUnavailable(OracleError):
    """Holder or donor counts could not be obtained"""
    pass


class PublishFailed(OracleError):
    """Audit record could not be published"""
    pass


class InvalidConfiguration(OracleError):
    """A configured constant is missing or out of range"""
    pass

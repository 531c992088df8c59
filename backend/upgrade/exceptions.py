"""
Errors raised by database upgrade steps.

Every error here is fatal for the step: the caller is expected to abort the
upgrade and roll back its transaction.
"""


class UpgradeError(RuntimeError):
    """Base class for fatal upgrade failures"""


class ScriptNotFoundError(UpgradeError):
    """A prepare or cleanup SQL script could not be located"""


class SqlExecutionError(UpgradeError):
    """A statement failed; the driver error is chained as __cause__"""


class MissingSystemTemplateError(UpgradeError):
    """A hypervisor in use has no system VM template for the target release"""

"""
Error taxonomy for the calculation pipeline.

Field validation problems are never raised; they travel as ValidationResult
values. The exceptions below are raised inside a boundary and caught there:

- ComputeFailure:      a calculator's formula code blew up (registry boundary)
- ResourceUnavailable: the pricing table could not be loaded (resolver boundary)
- ExportFailure:       clipboard / file output was refused (export boundary)
"""


class CostflowError(Exception):
    """Base class for pipeline errors."""


class ComputeFailure(CostflowError):
    def __init__(self, calculator: str, cause: Exception = None):
        self.calculator = calculator
        self.cause = cause
        super().__init__(f"Calculator '{calculator}' failed: {cause!r}")


class ResourceUnavailable(CostflowError):
    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Pricing source {source!r} unavailable: {reason}")


class ExportFailure(CostflowError):
    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"{action} failed: {reason}")

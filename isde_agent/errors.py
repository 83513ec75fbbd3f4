"""Failure taxonomy for the wizard automation."""


class AutomationError(Exception):
    """Base class for stage-level failures."""


class AutomationStopped(AutomationError):
    """Raised at a suspension point once the session has been stopped."""


class DetectionAmbiguous(AutomationError):
    def __init__(self, message: str = "Current page could not be recognised"):
        super().__init__(message)


class ElementNotFound(AutomationError):
    def __init__(self, selector: str, timeout: float = 0.0):
        self.selector = selector
        self.timeout = timeout
        super().__init__(f"Element not found after {timeout:.1f}s: {selector}")


class LoopDetected(AutomationError):
    def __init__(self, step: str, count: int):
        self.step = step
        self.count = count
        super().__init__(
            f"Step '{step}' repeated {count} times. Manual intervention required, then resume."
        )


class MissingRequiredInput(AutomationError):
    def __init__(self, step: str, fields: list[str]):
        self.step = step
        self.fields = fields
        super().__init__(
            f"Missing input for step '{step}': {', '.join(fields)}. Provide it manually, then resume."
        )


class UploadFailure(AutomationError):
    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason
        super().__init__(f"Upload of {document} failed: {reason}")

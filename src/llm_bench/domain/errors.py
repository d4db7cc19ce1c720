"""
Domain Errors

Exception hierarchy shared by the benchmark components.
"""


class BenchmarkError(Exception):
    """Base class for benchmark errors"""
    pass


class InferenceError(BenchmarkError):
    """The model could not be reached or returned an unusable response"""
    pass


class JudgeError(BenchmarkError):
    """The judge model failed or its reply could not be parsed"""

    def __init__(self, message: str, raw_response: str | None = None):
        super().__init__(message)
        self.raw_response = raw_response


class ToolLoopBudgetExceeded(BenchmarkError):
    """The tool-calling loop reached its iteration budget without a final answer"""

    def __init__(self, max_iterations: int):
        super().__init__(f"maximum iterations ({max_iterations}) reached without final answer")
        self.max_iterations = max_iterations


class ProvisioningError(BenchmarkError):
    """The inference backend could not provide a model. Fatal for the run."""
    pass


class RunTimeoutError(BenchmarkError):
    """The overall run deadline expired"""
    pass

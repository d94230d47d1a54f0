from .workflow import SessionDocument, VerificationWorkflow, WorkflowState

__all__ = ["SessionDocument", "VerificationWorkflow", "WorkflowState"]

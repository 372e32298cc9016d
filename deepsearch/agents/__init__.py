from .orchestrator import AgentOrchestrator, TurnResult

__all__ = ["AgentOrchestrator", "TurnResult"]

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..services.llm_service import LLMService, llm_service


class BaseAgent(ABC):
    """Common shape for agents: a name, a system prompt and an async process step."""

    def __init__(self, name: str, description: str, llm: LLMService = None):
        self.name = name
        self.description = description
        self.llm = llm or llm_service

    @abstractmethod
    def get_system_prompt(self) -> str:
        ...

    @abstractmethod
    async def process(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        ...

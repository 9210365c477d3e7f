from __future__ import annotations
from abc import ABC, abstractmethod

from llm.schemas import EncodedFile


class LLMProvider(ABC):
    name: str = "base"

    @abstractmethod
    async def generate(self, *, instruction: str, file: EncodedFile) -> str:
        """
        Must return the model output as TEXT (parsing/validation happens in extraction.response_parser).
        Transport errors propagate untouched; ExtractionClient classifies them.
        """
        raise NotImplementedError

from __future__ import annotations
import httpx

from llm.providers.base import LLMProvider
from llm.schemas import EncodedFile


class OpenAIProvider(LLMProvider):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_s: float = 60.0,
    ):
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is missing")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _file_part(self, file: EncodedFile) -> dict:
        data_url = f"data:{file.mime_type};base64,{file.data}"
        if file.mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": data_url}}
        return {
            "type": "file",
            "file": {"filename": file.filename or "document.pdf", "file_data": data_url},
        }

    async def generate(self, *, instruction: str, file: EncodedFile) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": instruction},
                        self._file_part(file),
                    ],
                }
            ],
            "temperature": 0.2,
            "max_tokens": 2048,
        }

        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            r = await client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["choices"][0]["message"].get("content") or ""

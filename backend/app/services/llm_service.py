import logging
from typing import Optional, List, Tuple, Any
from groq import AsyncGroq
from google import genai
from ..core.config import settings

logger = logging.getLogger(__name__)


class LLMUnavailable(RuntimeError):
    """No configured provider could produce a response."""


class LLMService:
    """
    Service for interacting with LLMs (Groq and Google Gemini).
    Fallback order: Groq 1 -> Gemini 1 -> Gemini 2 -> Groq 2 (last resort)

    Only used to read patient free text into request fields; scoring never
    goes through an LLM.
    """

    def __init__(self):
        # List of (client, name, provider) tuples in fallback order
        self.clients: List[Tuple[Any, str, str]] = []
        self.current_index: int = 0

        if settings.GROQ_API_KEY:
            client = AsyncGroq(api_key=settings.GROQ_API_KEY)
            self.clients.append((client, "GROQ_API_KEY (primary)", "groq"))

        if settings.GEMINI_API_KEY:
            client = genai.Client(api_key=settings.GEMINI_API_KEY)
            self.clients.append((client, "GEMINI_API_KEY (primary)", "gemini"))

        if settings.GEMINI_API_KEY_2:
            client = genai.Client(api_key=settings.GEMINI_API_KEY_2)
            self.clients.append((client, "GEMINI_API_KEY_2 (backup)", "gemini"))

        if settings.GROQ_API_KEY_2:
            client = AsyncGroq(api_key=settings.GROQ_API_KEY_2)
            self.clients.append((client, "GROQ_API_KEY_2 (last resort)", "groq"))

        logger.info(
            "LLM Service initialized with %d providers: %s",
            len(self.clients), ", ".join(name for _, name, _ in self.clients) or "none",
        )

    @property
    def available(self) -> bool:
        return bool(self.clients)

    def _is_rate_limit_error(self, error: Exception) -> bool:
        """Check if the error is a rate limit error."""
        error_str = str(error).lower()
        return (
            "429" in error_str or
            "rate limit" in error_str or
            "rate_limit" in error_str or
            "quota" in error_str or
            "resource exhausted" in error_str
        )

    async def _try_groq(
            self,
            client: AsyncGroq,
            messages: List[dict],
            temperature: float,
            max_tokens: int
    ) -> str:
        response = await client.chat.completions.create(
            model=settings.GROQ_MODEL,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens
        )
        return response.choices[0].message.content

    async def _try_gemini(
            self,
            client: genai.Client,
            messages: List[dict],
            temperature: float,
            max_tokens: int
    ) -> str:
        """Gemini takes a single prompt; fold the system message into it."""
        prompt_parts = []
        for msg in messages:
            if msg["role"] == "system":
                prompt_parts.append(f"Instructions: {msg['content']}\n\n")
            elif msg["role"] == "user":
                prompt_parts.append(msg["content"])

        response = await client.aio.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents="".join(prompt_parts),
            config={
                "temperature": temperature,
                "max_output_tokens": max_tokens
            }
        )
        return response.text

    async def generate(
            self,
            prompt: str,
            system_prompt: Optional[str] = None,
            temperature: float = 0.7,
            max_tokens: int = 1024
    ) -> str:
        """
        Generate a response from the LLM.
        Fallback order: Groq 1 -> Gemini 1 -> Gemini 2 -> Groq 2
        """
        if not self.clients:
            raise LLMUnavailable("No LLM service available. Please configure GROQ_API_KEY or GEMINI_API_KEY.")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        last_error = None
        for i in range(len(self.clients)):
            idx = (self.current_index + i) % len(self.clients)
            client, name, provider = self.clients[idx]

            try:
                if provider == "groq":
                    result = await self._try_groq(client, messages, temperature, max_tokens)
                else:  # gemini
                    result = await self._try_gemini(client, messages, temperature, max_tokens)

                # Stick with the provider that worked
                self.current_index = idx
                return result

            except Exception as e:
                last_error = e
                if self._is_rate_limit_error(e):
                    logger.warning("Rate limited on %s, trying next provider...", name)
                else:
                    logger.warning("LLM error (%s): %s", name, e)

        raise LLMUnavailable(f"All LLM providers failed. Last error: {last_error}")

    async def generate_json(
            self,
            prompt: str,
            system_prompt: Optional[str] = None,
            temperature: float = 0.0
    ) -> str:
        """
        Generate a JSON response from the LLM.
        Uses zero temperature for repeatable extraction.
        """
        json_system = (system_prompt or "") + "\n\nRespond ONLY with valid JSON. No explanations or markdown."
        return await self.generate(prompt, json_system, temperature)


# Singleton instance
llm_service = LLMService()

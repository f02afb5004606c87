import base64

from openai import AsyncOpenAI

from app.receipt.prompts import USER_PROMPT, json_system_prompt

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiReceiptExtractor:
    """Receipt extraction using Gemini through its OpenAI-compatible endpoint.

    Gemini answers in JSON mode, so the raw text is returned and parsed by
    the caller.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=GEMINI_OPENAI_BASE_URL)
        self.model = model
        self.system_prompt = json_system_prompt()

    async def aclose(self) -> None:
        await self.client.close()

    async def extract(self, image_bytes: bytes, content_type: str) -> str:
        b64_image = base64.b64encode(image_bytes).decode("utf-8")
        media_type = content_type or "image/jpeg"

        completion = await self.client.chat.completions.create(
            model=self.model,
            temperature=0.1,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": self.system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{b64_image}"}},
                    ],
                },
            ],
        )

        return completion.choices[0].message.content or ""

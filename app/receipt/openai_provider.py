import base64

from agents import Agent, ModelSettings, OpenAIResponsesModel, Runner
from openai import AsyncOpenAI

from app.receipt.base import ReceiptAnalysisResult
from app.receipt.prompts import SYSTEM_PROMPT, USER_PROMPT


class OpenAIReceiptExtractor:
    """Receipt extraction using OpenAI Agents SDK with GPT-4o vision."""

    def __init__(self, api_key: str, model: str = "gpt-4o", client: AsyncOpenAI | None = None):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.agent = Agent(
            name="Receipt Scanner",
            instructions=SYSTEM_PROMPT,
            model=OpenAIResponsesModel(model=model, openai_client=self.client),
            model_settings=ModelSettings(temperature=0.1),
            output_type=ReceiptAnalysisResult,
        )

    async def aclose(self) -> None:
        await self.client.close()

    async def extract(self, image_bytes: bytes, content_type: str) -> ReceiptAnalysisResult:
        b64_image = base64.b64encode(image_bytes).decode("utf-8")
        media_type = content_type or "image/jpeg"

        result = await Runner.run(
            self.agent,
            input=[
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": USER_PROMPT},
                        {"type": "input_image", "image_url": f"data:{media_type};base64,{b64_image}"},
                    ],
                }
            ],
        )

        return result.final_output

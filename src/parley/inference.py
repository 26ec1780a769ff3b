import logging
from typing import Any, AsyncIterator, Protocol

from common import llm
from parley.config import ImageGenConfig, ImageProfile, ModelId, resolve_profile
from parley.images import (
    DEFAULT_GENERATED_MIME,
    inline_image_markdown,
    split_data_url,
)
from parley.prompts import SAFETY_SETTINGS, build_system_instruction
from parley.sessions.schema import Message

logger = logging.getLogger(__name__)


class InferenceClient(Protocol):
    def stream_chat(
        self,
        history: list[Message],
        text: str,
        image: str | None,
        model_id: ModelId,
        image_config: ImageGenConfig | None = None,
    ) -> AsyncIterator[str]: ...


def _content_parts(text: str, image: str | None) -> str | list[dict]:
    if not image:
        return text
    return [
        {"type": "image_url", "image_url": {"url": image}},
        {"type": "text", "text": text},
    ]


def build_chat_messages(history: list[Message], text: str, image: str | None) -> list[dict]:
    """Map stored history plus the new turn onto chat-completion messages."""
    messages = []
    for msg in history:
        if msg.is_streaming or msg.is_error:
            continue
        role = "assistant" if msg.role == "model" else "user"
        messages.append({"role": role, "content": _content_parts(msg.content, msg.image)})
    messages.append({"role": "user", "content": _content_parts(text, image)})
    return messages


def build_image_prompt(text: str, image_config: ImageGenConfig | None) -> str:
    prompt = text
    if image_config and image_config.style:
        prompt += f"\nStyle: {image_config.style}"
    if image_config and image_config.negative_prompt:
        prompt += f"\nNegative Prompt: {image_config.negative_prompt}"
    return prompt


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _image_fragment(part: Any) -> str | None:
    image_url = _field(part, "image_url")
    url = _field(image_url, "url") if image_url is not None else None
    if not url:
        return None
    mime, data = split_data_url(url, default_mime=DEFAULT_GENERATED_MIME)
    return inline_image_markdown(mime, data)


def response_fragments(message: Any) -> list[str]:
    """Translate a single image-model response into display fragments, in order.

    Text parts pass through unchanged; image parts become inline markdown images.
    """
    fragments: list[str] = []
    content = _field(message, "content")
    if isinstance(content, list):
        for part in content:
            if _field(part, "type") == "text" and _field(part, "text"):
                fragments.append(_field(part, "text"))
            else:
                fragment = _image_fragment(part)
                if fragment:
                    fragments.append(fragment)
    elif content:
        fragments.append(content)

    for image in _field(message, "images") or []:
        fragment = _image_fragment(image)
        if fragment:
            fragments.append(fragment)
    return fragments


class LiteLLMInferenceClient:
    async def stream_chat(
        self,
        history: list[Message],
        text: str,
        image: str | None,
        model_id: ModelId,
        image_config: ImageGenConfig | None = None,
    ) -> AsyncIterator[str]:
        profile = resolve_profile(model_id, image_config)

        if isinstance(profile, ImageProfile):
            async for fragment in self._generate_image(profile, text, image_config):
                yield fragment
            return

        messages = [
            {"role": "system", "content": build_system_instruction(profile.instruction_suffix)}
        ] + build_chat_messages(history, text, image)

        try:
            async for fragment in llm.stream_text(
                model=profile.model,
                messages=messages,
                safety_settings=SAFETY_SETTINGS,
                **profile.completion_kwargs(),
            ):
                yield fragment
        except Exception as e:
            logger.error(f"Streaming error from {profile.model}: {e}")
            raise

    async def _generate_image(
        self, profile: ImageProfile, text: str, image_config: ImageGenConfig | None
    ) -> AsyncIterator[str]:
        prompt = build_image_prompt(text, image_config)
        try:
            response = await llm.acompletion(
                model=profile.model,
                messages=[{"role": "user", "content": prompt}],
                **profile.completion_kwargs(),
            )
        except Exception as e:
            logger.error(f"Image generation error from {profile.model}: {e}")
            raise

        if not response.choices:
            return
        for fragment in response_fragments(response.choices[0].message):
            yield fragment

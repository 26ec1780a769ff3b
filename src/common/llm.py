import warnings
from typing import Any, AsyncIterator

import litellm
from litellm import acompletion as litellm_acompletion

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
litellm.drop_params = True


async def acompletion(
    model: str,
    messages: list[dict],
    stream: bool = False,
    temperature: float | None = None,
    **kwargs,
) -> Any:
    params = {
        "model": model,
        "messages": messages,
        "stream": stream,
        **kwargs,
    }

    if temperature is not None:
        params["temperature"] = temperature

    return await litellm_acompletion(**params)


async def stream_text(
    model: str,
    messages: list[dict],
    temperature: float | None = None,
    **kwargs,
) -> AsyncIterator[str]:
    stream = await acompletion(
        model=model,
        messages=messages,
        stream=True,
        temperature=temperature,
        **kwargs,
    )

    async for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta
        if hasattr(delta, "content") and delta.content:
            yield delta.content


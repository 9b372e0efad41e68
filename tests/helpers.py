"""Builders and fake provider handlers shared by tests."""

import asyncio
import json

from aiohttp import web

from llm_speedometer.models import ModelRef, ProviderEndpoint, ProviderFamily

from .test_const import TEST_API_KEY


def write_config(path, config: dict):
    path.write_text(json.dumps(config, indent=2))
    return path


def make_endpoint(
    provider_id: str = "openai",
    family: ProviderFamily = ProviderFamily.OPENAI_COMPATIBLE,
    base_url: str = "https://api.example.com/v1",
    api_key: str = TEST_API_KEY,
) -> ProviderEndpoint:
    return ProviderEndpoint(
        id=provider_id,
        display_name=provider_id.title(),
        family=family,
        base_url=base_url,
        api_key=api_key,
    )


def make_ref(provider_id: str = "openai", model_id: str = "gpt-test") -> ModelRef:
    return ModelRef(
        provider_id=provider_id,
        model_id=model_id,
        display_name=model_id,
        provider_name=provider_id.title(),
    )


def stream_handler(body: bytes, status: int = 200, chunk_size: int = 0, delay: float = 0.0,
                   content_type: str = "text/event-stream"):
    """aiohttp handler that streams ``body``, optionally in fixed-size chunks."""

    async def handler(request: web.Request) -> web.StreamResponse:
        request.app["requests"].append({
            "path": request.path,
            "headers": dict(request.headers),
            "json": await request.json(),
        })
        if status >= 300:
            return web.Response(status=status, text='{"error":{"message":"invalid x-api-key"}}')

        response = web.StreamResponse(status=status, headers={"Content-Type": content_type})
        await response.prepare(request)
        size = chunk_size or len(body) or 1
        for start in range(0, len(body), size):
            await response.write(body[start:start + size])
            if delay:
                await asyncio.sleep(delay)
        await response.write_eof()
        return response

    return handler

"""Run live connectivity checks against the env-configured providers."""

from __future__ import annotations

import asyncio

from dialdesk.logging import configure_logging
from dialdesk.services.hub import ProviderHub
from dialdesk.settings import Settings


async def main() -> None:
    configure_logging()
    hub = ProviderHub(settings=Settings())
    checks = [
        ("ai:openai", hub.check_ai_provider, hub.ai.implicit_provider()),
        ("telephony:twilio", hub.check_telephony_provider, hub.telephony.implicit_provider()),
    ]
    try:
        for label, check, provider in checks:
            result = await check(provider)
            if result.ok:
                print(f"[{label}] OK {result.latency_ms}ms: {result.preview}")
            else:
                print(f"[{label}] ERROR: {result.error}")
    finally:
        await hub.shutdown()


if __name__ == "__main__":
    asyncio.run(main())

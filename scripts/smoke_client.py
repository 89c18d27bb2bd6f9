"""
Smoke client for a running relay.
Exercises the health and chat endpoints and the widget's relay client.
"""

import asyncio
import os
import sys

import httpx

from voice_relay.widget.relay import RelayClient


BASE_URL = os.environ.get("RELAY_URL", "http://localhost:3000")


async def check_health():
    """Check the health endpoint."""
    print("\n🏥 Checking /api/health...")

    async with httpx.AsyncClient() as client:
        response = await client.get(f"{BASE_URL}/api/health")
        print(f"   /api/health: {response.status_code}")
        print(f"   {response.json()}")


async def check_validation():
    """A request without a message must be rejected."""
    print("\n🚫 Checking empty message handling...")

    async with httpx.AsyncClient() as client:
        response = await client.post(f"{BASE_URL}/api/chat", json={})
        print(f"   /api/chat {{}}: {response.status_code} {response.json()}")


async def check_chat():
    """Send a few turns through the widget's relay client."""
    print("\n💬 Checking /api/chat...")

    messages = [
        "Hello, who are you?",
        "Give me one tip for a better landing page.",
    ]

    async with RelayClient(f"{BASE_URL}/api/chat") as relay:
        for text in messages:
            print(f"\n   📤 User: {text}")
            reply = await relay.ask(text)
            print(f"   🤖 AI: {reply[:200]}")


async def main():
    """Run all checks."""
    print("=" * 60)
    print("🧪 Voice Relay Smoke Client")
    print("=" * 60)
    print(f"Target: {BASE_URL}")

    try:
        await check_health()
    except httpx.ConnectError:
        print("\n❌ Cannot connect to server. Make sure it's running:")
        print("   voice-relay serve")
        return 1

    await check_validation()
    await check_chat()

    print("\n" + "=" * 60)
    print("✅ All checks completed!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

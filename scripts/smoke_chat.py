#!/usr/bin/env python3
"""Smoke test for chat against a running backend.

Needs URBOX_ID_TOKEN (a session id token) and URBOX_USER_ID in the environment;
API_BASE_URL / COMPANY_ID are read through the usual settings.
"""

import asyncio
import os

from urbox.client import UrboxClient
from urbox.core.logging import setup_logging


async def smoke_chat():
    token = os.environ["URBOX_ID_TOKEN"]
    user_id = os.environ["URBOX_USER_ID"]

    async def token_provider() -> str:
        return token

    async with UrboxClient(token_provider=token_provider, user_id=user_id) as client:
        print("=" * 60)
        print("SMOKE TEST CHAT")
        print("=" * 60)

        # 1. Groups
        print("\n1. Listing groups...")
        groups = await client.chat.get_groups()
        print(f"✓ {len(groups)} groups")
        if not groups:
            print("No group to test against, stopping")
            return
        group = groups[0]
        print(f"  Using: {group.name} ({group.id})")

        # 2. Realtime + history
        print("\n2. Connecting and loading history...")
        await client.realtime.connect()
        session = client.chat_session(on_error=lambda msg: print(f"✗ {msg}"))
        await session.open(group.id)
        print(f"✓ State: {session.state.value}, {len(session.messages)} messages")

        # 3. Optimistic send
        print("\n3. Sending a message...")
        sent = await session.send("smoke test ping")
        assert sent is not None
        assert session.timeline.ids[0] == sent.id
        print(f"✓ Sent: {sent.id}")

        # 4. Reaction
        print("\n4. Reacting...")
        await session.react(sent.id, "👍")
        print(f"✓ Reactions: {[r.reaction for r in session.messages[0].reactions]}")

        await session.close()

        print("\n" + "=" * 60)
        print("CHAT SMOKE TEST PASSED ✓")
        print("=" * 60)


if __name__ == "__main__":
    setup_logging()
    asyncio.run(smoke_chat())

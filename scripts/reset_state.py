"""Reset all fulfillment state in Redis (useful for testing)."""

import asyncio

from fulfillment.state.manager import StateManager

TABLES = ("orders", "riders", "shops", "products", "notifications")


async def reset_all_state() -> None:
    """Delete every key owned by the fulfillment store."""
    print("\n⚠️  WARNING: This will delete ALL fulfillment data from Redis!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")

    state_manager = StateManager()
    client = await state_manager.client()

    deleted = 0
    for table in TABLES:
        keys = [key async for key in client.scan_iter(match=f"{table}:*")]
        if keys:
            await state_manager.delete(*keys)
            deleted += len(keys)

    await state_manager.disconnect()

    print(f"✓ Removed {deleted} keys from Redis\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())

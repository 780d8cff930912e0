"""Sign in and watch the notification bell from the terminal

Usage:
    python -m scripts.watch_notifications pharmacy@pharmasync.dev pharmacy123
    python -m scripts.watch_notifications pharmacy@pharmasync.dev pharmacy123 --path /pharmacy/inventory
"""
import argparse
import asyncio

from pharmasync.client import PharmaSyncClient
from pharmasync.domain.enums import SyncEventType
from pharmasync.repositories.credential_store import InMemoryCredentialStore
from pharmasync.services.alert_dispatcher import badge_for
from pharmasync.utils.logger import setup_logging


async def watch(email: str, password: str, path: str, seconds: int) -> None:
    client = PharmaSyncClient(credential_store=InMemoryCredentialStore())
    await client.start()

    result = await client.login(email, password)
    if not result.success:
        print(f"Login failed: {result.reason} ({result.error_code})")
        return

    actor = client.actor
    print(f"Signed in as {actor.display_name} [{actor.role.value} / {actor.workflow_status.value}]")

    decision = await client.navigate(path)
    if decision.allowed:
        print(f"  {path}: allowed")
    else:
        print(f"  {path}: redirected to {decision.redirect_to}")

    def on_count(event):
        badge = badge_for(event.snapshot)
        print(f"  Badge: {badge.text or '-'} ({badge.icon})")

    def on_alert(event):
        print(f"  ALERT ({'urgent' if event.urgent else 'subtle'}): {event.previous.count} -> {event.snapshot.count}")

    client.sync_engine.subscribe(SyncEventType.COUNT_CHANGED, on_count)
    client.sync_engine.subscribe(SyncEventType.ALERT_RAISED, on_alert)

    page = await client.open_notifications()
    if page.success:
        for record in page.data:
            marker = " " if record.is_read else "*"
            print(f"  {marker} [{record.type.value}] {record.title}")

    try:
        await asyncio.sleep(seconds)
    finally:
        await client.logout()
        await client.close()
        print("Signed out")


def main():
    parser = argparse.ArgumentParser(description="Watch notifications for an account")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--path", default="/notifications", help="Path to check access for")
    parser.add_argument("--seconds", type=int, default=120, help="How long to keep polling")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(watch(args.email, args.password, args.path, args.seconds))


if __name__ == "__main__":
    main()

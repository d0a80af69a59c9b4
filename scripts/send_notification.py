"""CLI script to send a notification to one or more users."""
from __future__ import annotations

import argparse
import json

from app.core.enums import NotificationCategory
from app.tasks.notifications import dispatch_notification, dispatch_to_users


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Send a notification through the dispatcher",
    )
    parser.add_argument("user_ids", nargs="+", help="Recipient user ids")
    parser.add_argument("--title", required=True)
    parser.add_argument("--body", required=True)
    parser.add_argument(
        "--category",
        choices=[category.value for category in NotificationCategory],
        default=NotificationCategory.SYSTEM.value,
    )
    parser.add_argument("--url", help="Link opened when the notification is tapped")
    parser.add_argument(
        "--async",
        action="store_true",
        dest="use_async",
        help="Queue the fan-out on Celery instead of sending immediately",
    )

    args = parser.parse_args()

    payload = {"title": args.title, "body": args.body, "category": args.category}
    if args.url:
        payload["url"] = args.url

    if args.use_async:
        task = dispatch_to_users.apply_async(args=(args.user_ids, payload))
        print(f"Task queued: {task.id}")
    else:
        result = dispatch_notification.run(args.user_ids, payload)
        print(f"Result: {json.dumps(result)}")


if __name__ == "__main__":
    main()

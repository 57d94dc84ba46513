"""Business logic for share links: issue, resolve, revoke."""

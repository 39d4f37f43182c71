"""
Notifications have no table of their own. They are derived on every fetch from:

- sos_requests (active SOS by others -> "sos_nearby", caller's SOS being helped
  -> "sos_accepted", caller's completed SOS -> "help_completed")
- chat_messages addressed to the caller -> "message"

Read/deleted flags live in a per-user JSON document
<notification_state_dir>/notification_states_<user_id>.json:

{
  "<notification id>": {"is_read": bool, "is_deleted": bool},
  ...
}

Notification ids are "<prefix>-<source row id>" with prefixes
sos / accepted / message / completed, so flags survive re-fetches.
"""

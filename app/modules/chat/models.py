"""
Database table: chat_messages

Two-party thread attached to an SOS request, between the requester and
whoever they are talking to (an offering volunteer or the assigned helper).

Columns:
- id: UUID (Primary Key)
- sos_request_id: UUID (Foreign Key to sos_requests.id)
- sender_id: UUID (Foreign Key to profiles.id)
- receiver_id: UUID (Foreign Key to profiles.id)
- content: TEXT
- is_read: BOOLEAN (default false)
- created_at: TIMESTAMP
"""

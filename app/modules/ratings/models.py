"""
Database table: sos_ratings

One rating per SOS request, left by the requester for the helper once the
request is completed (unique sos_request_id, duplicate insert -> 23505).

Columns:
- id: UUID (Primary Key)
- sos_request_id: UUID (Foreign Key to sos_requests.id)
- requester_id: UUID (Foreign Key to profiles.id)
- helper_id: UUID (Foreign Key to profiles.id)
- rating: INTEGER (1-5)
- comment: TEXT (nullable)
- created_at: TIMESTAMP
"""

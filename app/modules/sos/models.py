# Supabase tables: sos_requests
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

sos_requests:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null) - sos_requests_user_id_fkey
- helper_id: uuid (foreign key to profiles.id, nullable) - sos_requests_helper_id_fkey
- type: text (not null)
- description: text (not null)
- urgency: text (nullable) - values: Khẩn cấp, Trung bình, Thấp
- people_affected: integer (default: 1)
- latitude: numeric (not null)
- longitude: numeric (not null)
- manual_address: text (nullable)
- images: text[] (nullable) - public URLs of scene photos
- status: text (default: 'active') - values: active, helping, completed, cancelled
- created_at: timestamp (default: now())
- completed_at: timestamp (nullable) - set on transition to completed

Status transitions:
- active  -> helping    (requester accepts a help offer; helper_id is set)
- active  -> cancelled  (requester)
- helping -> completed  (requester or helper; completed_at is set)
"""

# Supabase tables: help_offers
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

help_offers:
- id: uuid (primary key)
- sos_request_id: uuid (foreign key to sos_requests.id, not null)
- volunteer_id: uuid (foreign key to profiles.id, not null) - help_offers_volunteer_id_fkey
- status: text (not null, default: 'pending') - values: pending, accepted, rejected
- message: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (sos_request_id, volunteer_id); a duplicate insert
  fails with Postgres code 23505
"""

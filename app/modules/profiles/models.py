# Supabase tables: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- name: text (not null)
- avatar_url: text (nullable)
- phone: text (nullable)
- bio: text (nullable)
- location: text (nullable)
- marital_status: text (nullable)
- birth_date: date (nullable)
- privacy_level: text (default: 'public') - values: public, friends, private
- is_volunteer_ready: boolean (default: false)
- is_verified: boolean (default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""

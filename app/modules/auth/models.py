# Supabase Auth
# This module uses Supabase's built-in authentication system
# Supabase Auth handles:
# - User registration (auth.users table)
# - User login and session management
# - JWT token generation and validation
# - Password hashing and security

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (display name kept in user_metadata.name)
- auth.sign_in_with_password() - Authenticate users, also used to verify the
  current password before a change
- auth.get_user() - Get current user from JWT token
- auth.admin.update_user_by_id() - Set a new password (service role key)

A matching row in public.profiles (see app/modules/profiles/models.py) is
upserted on registration so the rest of the API can join on it.
"""

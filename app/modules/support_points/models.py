"""
Database table: support_points

Columns:
- id: UUID (Primary Key)
- name: TEXT
- type: TEXT (one of SUPPORT_POINT_TYPES)
- description: TEXT (nullable)
- operating_hours: TEXT (nullable)
- is_verified: BOOLEAN (set by moderators, new points start unverified)
- is_active: BOOLEAN
- latitude: DOUBLE PRECISION
- longitude: DOUBLE PRECISION
- address: TEXT (nullable)
- contact_info: JSONB ({"phone": "..."}; older rows may hold it as a JSON string)
- images: TEXT[] (nullable)
- owner_id: UUID (Foreign Key to profiles.id)
- created_at: TIMESTAMP
- updated_at: TIMESTAMP
"""

"""
Database tables: community_posts, post_likes, post_comments

community_posts:
- id: UUID (Primary Key)
- user_id: UUID (Foreign Key to profiles.id)
- content: TEXT
- images: TEXT[] (public image URLs)
- hashtags: TEXT[] (tags without the leading '#')
- tagged_users: UUID[] (profiles.id)
- privacy_level: TEXT ('public', 'friends', 'private'; NULL treated as 'public')
- likes_count: INTEGER
- comments_count: INTEGER
- created_at: TIMESTAMP
- updated_at: TIMESTAMP

post_likes (unique post_id + user_id, duplicate insert -> 23505):
- id: UUID (Primary Key)
- post_id: UUID (Foreign Key to community_posts.id)
- user_id: UUID (Foreign Key to profiles.id)
- created_at: TIMESTAMP

post_comments:
- id: UUID (Primary Key)
- post_id: UUID (Foreign Key to community_posts.id)
- user_id: UUID (Foreign Key to profiles.id)
- content: TEXT
- created_at: TIMESTAMP
"""

# Routes package init
"""
PetProject Backend - API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.
How:   One module per area; each exposes a `router` mounted in main.py.

Route Inventory:
    - accounts.py:  /api/me, /api/accounts/{uid}, usernames, pets
    - social.py:    follow/unfollow, followers, suggestions, search
    - posts.py:     Petbook posts, likes, comments, media uploads
    - questions.py: Petora questions, answers, upvotes, images
    - scan.py:      medical record scanning and storage
    - health.py:    GET /health
    - deps.py:      shared dependencies (caller identity)

Routes handle HTTP concerns only. Rules live in petproject.services.
"""

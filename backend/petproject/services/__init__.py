# Services package init
"""
PetProject Backend - Services Layer
=====================================

What:  Business rules between the HTTP routes and the document store.
How:   Services are stateless module-level singletons. The document store is
       passed to every call (routes get it from Depends(get_document_store)),
       while the blob store and the text-generation client are process-wide
       singletons the services import directly.

Service Inventory:
    - username_service:   username normalization, availability, claiming
    - account_service:    first-login accounts, profiles, pets
    - social_service:     follow/unfollow, follower lists, suggestions, search
    - feed_service:       posts, likes, comments, media uploads (Petbook)
    - qa_service:         questions, answers, upvotes (Petora)
    - ai_answer_service:  background "Petora AI" answers
    - scan_service:       medical-record extraction and storage
    - blob_service:       media storage (local disk or Firebase Storage)
    - gemini_service:     TextGenerationClient backed by Google Gemini
"""

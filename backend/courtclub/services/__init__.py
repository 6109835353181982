"""
Services Layer

Business logic for the club core. Every function takes an explicit SQLModel
Session, raises courtclub.errors.ClubError subclasses for expected outcomes,
and knows nothing about HTTP request/response objects.
"""

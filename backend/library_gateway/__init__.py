"""
Library Gateway — Application Package Initializer
==================================================

What:  Backend gateway for the library portal: uploads books and notices to
       S3, deletes them again, and asks Gemini for book summaries.
Who:   Imported by uvicorn (`library_gateway.main:app`), the console script
       and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    Services (SDK calls, fallbacks)  │  ← boto3 / google-generativeai
    ├─────────────────────────────────────┤
    │   Schemas & Config (contracts)      │  ← Pydantic + pydantic-settings
    └─────────────────────────────────────┘

    There is no persistence layer: uploaded objects live in the bucket and
    the frontend keeps track of their URLs.
"""

__version__ = "1.0.0"

# Services package init
"""
Library Gateway — Services Layer
=================================

What:  Everything that talks to an external SDK, between the routes and the
       outside world.

Service Inventory:
    - LLMService (abstract): One-model text generation + the fallback chain
    - GeminiService: LLMService on google-generativeai
    - SummaryService: Book summary prompts, chain, canned fallback text
    - StorageService: S3 upload, delete-by-URL and bucket probe via boto3
"""

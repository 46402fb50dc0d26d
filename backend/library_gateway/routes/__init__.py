# Routes package init
"""
Library Gateway — API Routes Package
=====================================

Route Inventory:
    - files.py:   POST   /api/upload/book
                  POST   /api/upload/notice
                  DELETE /api/delete-file
    - books.py:   POST   /api/books/generate-summary
    - health.py:  GET    /api/health
                  GET    /api/test-aws
                  GET    /api/ai/test-gemini-2

Routes are thin: read the request, call a service, shape the JSON.
Errors are raised as library_gateway.exceptions and rendered by the
handlers registered in main.py.
"""

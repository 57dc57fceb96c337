"""ColorForge — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic request/response
models, and the operations shared by the HTTP routes and batch jobs.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API request and response validation.
operations
    Generate, edit, recolor, visualize, and palette operations.  Used both
    by the routes and by the batch job dispatcher.
"""

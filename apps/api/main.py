"""uvicorn entrypoint for the Playgroup API: ``uvicorn main:app``.

Building the app here, rather than at import of playgroup.app, keeps
DATABASE_URL and the Playgroup secrets out of the import path, so tests
can call create_app() with their own settings.
"""

from playgroup.app import add_request_id_middleware, create_app

app = create_app()
# Outermost middleware: identity rejections still carry X-Request-ID
add_request_id_middleware(app)

__all__ = ["app"]

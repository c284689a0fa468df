from fastapi import FastAPI, Request
from starlette.responses import Response

# Quote payloads carry customer pricing; keep them out of indexes and shared caches.
RESPONSE_HEADERS = {
    'X-Robots-Tag': 'noindex, nofollow, noarchive',
    'Cache-Control': 'no-store',
    'X-Content-Type-Options': 'nosniff',
}


def install_response_headers(app: FastAPI) -> None:
    @app.middleware('http')
    async def add_response_headers(request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in RESPONSE_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

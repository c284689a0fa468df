from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from freight_portal.config import settings
from freight_portal.logging_config import setup_logging
from freight_portal.routers import quote_requests, quotes, suppliers
from freight_portal.security.headers import install_response_headers
from freight_portal.services.provider_factory import get_repositories
from freight_portal.services.supplier_service import seed_sample_suppliers


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.seed_sample_suppliers:
        await seed_sample_suppliers(app.state.repositories)
    yield


app = FastAPI(title='Freight Quote Portal', lifespan=lifespan)
app.state.repositories = get_repositories()

install_response_headers(app)

app.include_router(suppliers.router)
app.include_router(quote_requests.router)
app.include_router(quotes.router)


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'

from fastapi import Request

from freight_portal.services.repositories import QuoteRepositories


def get_repositories(request: Request) -> QuoteRepositories:
    return request.app.state.repositories

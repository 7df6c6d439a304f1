from __future__ import annotations


def build_allowed_origins(*, frontend_base_url: str, frontend_urls: str | None) -> list[str]:
    allowed: set[str] = {
        "http://localhost:3000",
        "http://localhost:5173",
    }

    if frontend_base_url:
        allowed.add(frontend_base_url.rstrip("/"))

    if frontend_urls:
        for origin in [s.strip().rstrip("/") for s in str(frontend_urls).split(",") if s.strip()]:
            allowed.add(origin)

    return sorted(allowed)


def build_allowed_origin_regex() -> str:
    """
    Azure App Service and Static Web Apps preview hosts:
      - *.azurewebsites.net
      - *.azurestaticapps.net

    Matches the registrable domains only, so "evilazurewebsites.net" is rejected.
    """
    return r"^https://([a-z0-9-]+\.)+(azurewebsites\.net|azurestaticapps\.net)$"

"""Public sitemap XML routes."""

from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from sitemap_builder.domain import SitemapDate, SitemapValidationError
from sitemap_builder.services.container import SitemapServices

router = APIRouter(tags=["sitemaps"])

XML_MEDIA_TYPE = "application/xml"

_PAGINATED_FILENAME = re.compile(r"^(?P<slug>[A-Za-z0-9_-]+)-(?P<page>[0-9]+)\.xml$")


def _get_sitemap_services(request: Request) -> SitemapServices:
    services = getattr(request.app.state, "sitemap_services", None)
    if isinstance(services, SitemapServices):
        return services

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Sitemap services are unavailable",
    )


async def _ensure_site_public(services: SitemapServices) -> None:
    if await services.scheduler.is_site_eligible():
        return

    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Sitemaps are not published for this site",
    )


@router.get("/sitemap.xml", response_class=Response)
async def get_sitemap(
    yyyy: int | None = None,
    mm: int | None = None,
    dd: int | None = None,
    services: SitemapServices = Depends(_get_sitemap_services),
) -> Response:
    await _ensure_site_public(services)

    date_params = (yyyy, mm, dd)
    if all(value is None for value in date_params):
        xml_content = await services.index_builder.render_index()
        return Response(content=xml_content, media_type=XML_MEDIA_TYPE)

    if any(value is None for value in date_params):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="yyyy, mm and dd must be provided together",
        )

    try:
        sitemap_date = SitemapDate(yyyy, mm, dd)  # type: ignore[arg-type]
    except SitemapValidationError as error:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(error),
        ) from error

    xml_content = await services.index_builder.render_partition(sitemap_date)
    if xml_content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No sitemap built for {sitemap_date}",
        )
    return Response(content=xml_content, media_type=XML_MEDIA_TYPE)


@router.get("/sitemaps/{filename}", response_class=Response)
async def get_paginated_sitemap(
    filename: str,
    services: SitemapServices = Depends(_get_sitemap_services),
) -> Response:
    await _ensure_site_public(services)

    match = _PAGINATED_FILENAME.match(filename)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sitemap not found",
        )

    xml_content = await services.index_builder.render_paginated(
        match.group("slug"), int(match.group("page"))
    )
    if xml_content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sitemap not found",
        )
    return Response(content=xml_content, media_type=XML_MEDIA_TYPE)

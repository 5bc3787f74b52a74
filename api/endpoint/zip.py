# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from __future__ import annotations

import logging

from sanic import Blueprint, response
from sanic.exceptions import InvalidUsage

from api.services import get_services
from routing.zip_validation import INVALID_ZIP_FORMAT, ZipLookupResult

logger = logging.getLogger(__name__)

blueprint = Blueprint("zip", url_prefix="/zip", version=1)


def _lookup_response(result: ZipLookupResult):
    if result.resolved:
        status = 200
    elif result.error_code == INVALID_ZIP_FORMAT:
        status = 400
    else:
        status = 404
    return response.json(result.to_json_dict(), status=status)


@blueprint.get("/lookup/<zip_code>", name="lookup_zip")
async def lookup_zip(request, zip_code):
    service = get_services(request).zip_service
    return _lookup_response(await service.resolve(zip_code))


@blueprint.post("/navigate", name="navigate_zip")
async def navigate_zip(request):
    payload = request.json
    if not isinstance(payload, dict):
        raise InvalidUsage("Request body must be a JSON object with a 'zip_code' field")
    service = get_services(request).zip_service
    result = await service.resolve(payload.get("zip_code"))
    logger.debug("ZIP navigation %s -> %s", result.zip_code, result.redirect_url or result.error_code)
    return _lookup_response(result)


@blueprint.get("/coverage", name="zip_coverage")
async def zip_coverage(request):
    service = get_services(request).zip_service
    return response.json(await service.deregulated_areas())

# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from datetime import datetime, timezone

from sanic import Blueprint, response

from api.services import get_services

blueprint = Blueprint('healthcheck', url_prefix='/healthcheck', version=1)


@blueprint.get('/')
async def healthcheck(request):
    services = get_services(request)
    data = {
        'date': datetime.now(timezone.utc).isoformat(),
        'release': request.app.config.get('RELEASE'),
        'environment': request.app.config.get('ENVIRONMENT'),
        'data': _check_data(services),
    }

    return response.json(data)


def _check_data(services):
    cities = services.plan_loader.available_cities()
    zip_codes = len(services.zip_table)
    if not cities or not zip_codes:
        return {
            'status': 'Fail',
            'details': f'{len(cities)} plan files, {zip_codes} ZIP mappings loaded',
        }
    return {
        'status': 'OK',
        'cities': len(cities),
        'zip_codes': zip_codes,
    }

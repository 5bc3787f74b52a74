# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from sanic.blueprints import Blueprint

from api.endpoint.healthcheck import blueprint as v1_healthcheck
from api.endpoint.plan import blueprint as v1_plan
from api.endpoint.zip import blueprint as v1_zip
from api.services import PlanServices


def init_api(api):
    services = PlanServices.from_config(api.config)
    services.init_app(api)
    api_blueprint = Blueprint.group([v1_healthcheck, v1_plan, v1_zip], version_prefix="/api/v")
    api.blueprint(api_blueprint)
    return services

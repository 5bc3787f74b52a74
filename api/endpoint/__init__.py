# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from routing.zip_validation import (COOPERATIVE, INVALID_ZIP_FORMAT,
                                    NOT_DEREGULATED, NOT_FOUND, NOT_TEXAS,
                                    ZipLookupResult, ZipValidationService,
                                    estimate_plan_count)

__all__ = [
    "COOPERATIVE",
    "INVALID_ZIP_FORMAT",
    "NOT_DEREGULATED",
    "NOT_FOUND",
    "NOT_TEXAS",
    "ZipLookupResult",
    "ZipValidationService",
    "estimate_plan_count",
]

"""
Services Module - Application services for the Resource Allocation Engine.

Application Services (orchestration):
- AllocationService: every user, team, project, task and comment operation

Infrastructure Services:
- Logging and observability
"""


def get_allocation_service(configure_logs: bool = True):
    """
    Get an AllocationService bound to the configured database.

    Args:
        configure_logs: Apply the ALLOCATION_LOG_LEVEL / ALLOCATION_LOG_JSON
            settings to the root logger first.
    """
    from config.settings import get_settings
    from . import logging_config
    from .allocation_service import AllocationService

    settings = get_settings()
    if configure_logs:
        logging_config.configure_logging(settings.log_level, settings.log_json)
    return AllocationService(settings=settings)


__all__ = [
    "get_allocation_service",
]

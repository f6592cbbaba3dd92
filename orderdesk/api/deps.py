"""
FastAPI dependencies shared by the API and worker services.
"""

from fastapi import HTTPException, Request, status

from orderdesk.services.container import Services


def get_services(request: Request) -> Services:
    """
    Return the services built at application startup.

    Raises:
        HTTPException: 503 if the services were not initialized
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return services

from fastapi import Depends, Request

from .container import ApplicationContainer


def get_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Application container not initialised.")
    return container


def get_account_auth_service(container: ApplicationContainer = Depends(get_container)):
    return container.account_auth_service


def get_subscription_lifecycle(container: ApplicationContainer = Depends(get_container)):
    return container.subscription_lifecycle

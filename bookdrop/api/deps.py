from fastapi import Request

from bookdrop.core.container import ApplicationContainer
from bookdrop.domain.transfers import TransferCoordinator


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_coordinator(request: Request) -> TransferCoordinator:
    return get_container(request).coordinator

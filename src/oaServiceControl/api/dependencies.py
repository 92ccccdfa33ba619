"""Request-scoped access to the components wired into the application."""

from fastapi import Request

from ..control.controller import ServiceController
from ..control.locks import ServiceLockRegistry
from ..core.config_schema import AppConfig
from ..core.interfaces import ExecutorFactory, ReachabilityChecker, ServiceStorage


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_storage(request: Request) -> ServiceStorage:
    return request.app.state.storage


def get_controller(request: Request) -> ServiceController:
    return request.app.state.controller


def get_executor_factory(request: Request) -> ExecutorFactory:
    return request.app.state.executor_factory


def get_reachability_checker(request: Request) -> ReachabilityChecker:
    return request.app.state.reachability_checker


def get_locks(request: Request) -> ServiceLockRegistry | None:
    return request.app.state.locks

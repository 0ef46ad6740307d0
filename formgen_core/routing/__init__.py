"""
Completion routing: provider gateway, model router, fallback execution.

- CompletionGateway: fixed provider order, each provider's default model
- ModelRouter: purpose -> primary + fallback models
- FallbackExecutor / RoutedCompleter: walk a purpose's model chain
- ParallelDispatcher: concurrent independent completions
"""
from formgen_core.routing.base import Completer
from formgen_core.routing.executor import (
    FallbackExecutor,
    ParallelDispatcher,
    ParallelTask,
    RoutedCompleter,
    TaskOutcome,
)
from formgen_core.routing.gateway import CompletionGateway
from formgen_core.routing.router import MODEL_CATALOG, PURPOSE_ROUTES, ModelRouter, StageEstimate

__all__ = [
    "Completer",
    "CompletionGateway",
    "FallbackExecutor",
    "ModelRouter",
    "ParallelDispatcher",
    "ParallelTask",
    "RoutedCompleter",
    "StageEstimate",
    "TaskOutcome",
    "MODEL_CATALOG",
    "PURPOSE_ROUTES",
]

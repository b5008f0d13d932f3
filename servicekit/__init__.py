"""Service objects: declared contracts, ordered steps, collected messages.

This package never imports application code; services are declared by
subclassing `Service` in the consuming project.
"""

from servicekit.collection import ContractCollection, ContractView
from servicekit.config import ServiceConfig, configure, get_config, reset_config
from servicekit.errors import (
    ConfigurationError,
    ContractError,
    InvalidNameError,
    InvalidRawInputShape,
    MissingArgument,
    NoStepsError,
    ReservedNameError,
    ServiceError,
    StepNotDefinedError,
    TypeMismatch,
)
from servicekit.fields import Arg, Output, RemoveArg, RemoveOutput
from servicekit.hooks import HOOK_EVENTS, Hook
from servicekit.messages import Message, Messages
from servicekit.plan import ServicePlan
from servicekit.propagation import propagate_messages
from servicekit.recorder import DefaultStepRecorder, NullStepRecorder, StepRecorder
from servicekit.service import BoundService, Service, ServiceResult
from servicekit.steps import RemoveStep, Step, resolve_steps
from servicekit.transactions import (
    NullTransactionManager,
    SQLAlchemyTransactionManager,
    Transaction,
    TransactionManager,
)

__all__ = [
    "Arg",
    "BoundService",
    "ConfigurationError",
    "ContractCollection",
    "ContractError",
    "ContractView",
    "DefaultStepRecorder",
    "HOOK_EVENTS",
    "Hook",
    "InvalidNameError",
    "InvalidRawInputShape",
    "Message",
    "Messages",
    "MissingArgument",
    "NoStepsError",
    "NullStepRecorder",
    "NullTransactionManager",
    "Output",
    "RemoveArg",
    "RemoveOutput",
    "RemoveStep",
    "ReservedNameError",
    "SQLAlchemyTransactionManager",
    "Service",
    "ServiceConfig",
    "ServiceError",
    "ServicePlan",
    "ServiceResult",
    "Step",
    "StepNotDefinedError",
    "StepRecorder",
    "Transaction",
    "TransactionManager",
    "TypeMismatch",
    "configure",
    "get_config",
    "propagate_messages",
    "reset_config",
    "resolve_steps",
]

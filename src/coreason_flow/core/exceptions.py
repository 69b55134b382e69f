# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_maco


class FlowError(Exception):
    """Base class for flow configuration errors surfaced to the caller."""

    pass


class FlowNotFoundError(FlowError):
    """Raised when the flow store has no flow with the requested id."""

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Flow not found: {flow_id}")
        self.flow_id = flow_id


class FlowDisabledError(FlowError):
    """Raised when the requested flow exists but is disabled."""

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"Flow is disabled: {flow_id}")
        self.flow_id = flow_id


class NoTriggerNodeError(FlowError):
    """Raised when a flow has no trigger node to start from."""

    def __init__(self, flow_id: str) -> None:
        super().__init__(f"No trigger node found in flow: {flow_id}")
        self.flow_id = flow_id


class GraphIntegrityError(FlowError):
    """Raised when an edge references a node that is not part of the flow."""

    pass


class FlowExecutionError(FlowError):
    """Raised when a run finished without any node producing output."""

    pass


class ModelError(Exception):
    """Base class for model registry and provider errors."""

    pass


class ModelNotFoundError(ModelError):
    def __init__(self, model_name: str) -> None:
        super().__init__(f"Model not found: {model_name}")
        self.model_name = model_name


class NoAvailableModelError(ModelError):
    def __init__(self) -> None:
        super().__init__("No available model: please configure at least one API key")


class ProviderUnavailableError(ModelError):
    def __init__(self, provider: str) -> None:
        super().__init__(f"Client not available for provider: {provider}")
        self.provider = provider


class ProviderError(ModelError):
    """Raised when a provider call fails (HTTP status, transport, timeout or payload)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class VoteError(Exception):
    """Base class for consensus voting errors."""

    pass


class NoModelsSpecifiedError(VoteError):
    def __init__(self) -> None:
        super().__init__("No models specified")


class NoAvailableModelsError(VoteError):
    def __init__(self) -> None:
        super().__init__("No available models: please configure at least one API key")


class AllModelsFailedError(VoteError):
    def __init__(self, errors: dict[str, str] | None = None) -> None:
        super().__init__("All models failed: please check API keys")
        self.errors = errors or {}

from __future__ import annotations


class StudioError(Exception):
    status_code = 500


class InvalidRequestError(StudioError):
    """Missing or invalid input. Always raised before any outbound call."""

    status_code = 400


class InvalidModelError(InvalidRequestError):
    def __init__(self, model: object) -> None:
        super().__init__("Invalid model specified")
        self.model = model


class GenerationError(StudioError):
    """Fatal for a single generation call; eligible for the style demo fallback."""


class ConfigurationError(GenerationError):
    pass


class ProviderError(GenerationError):
    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.provider_status = status_code


class EmptyResponseError(GenerationError):
    pass


class UnexpectedResponseShapeError(GenerationError):
    pass


class PersistenceError(StudioError):
    # Never surfaced to API callers; persistence catches and logs it.
    pass


class ProjectNotFoundError(StudioError):
    status_code = 404

    def __init__(self, project_id: str) -> None:
        super().__init__("Project not found")
        self.project_id = project_id

"""Typed pipeline error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across pipeline stages."""

    CONFIGURATION = "E_CONFIGURATION"
    BUILD = "E_BUILD"
    STAGING = "E_STAGING"
    CAPACITY = "E_CAPACITY"
    PACKAGING = "E_PACKAGING"
    LAUNCH = "E_LAUNCH"


class BootforgeError(Exception):
    """Pipeline failure carrying a code, an optional hint and string context.

    The ``stage`` context key, when present, names the pipeline step that
    failed and is always rendered first.
    """

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def stage(self) -> str | None:
        return self.context.get("stage")

    def __str__(self) -> str:
        message = super().__str__()
        lines = [f"[{self.stage}] {message}" if self.stage else message]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(
            f"  {key}: {value}" for key, value in self.context.items() if value and key != "stage"
        )
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "stage": self.stage,
            "message": super().__str__(),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigurationError(BootforgeError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION, hint=hint, context=context)


class BuildError(BootforgeError):
    """A component toolchain failed; names the component and its exit status."""

    def __init__(
        self,
        component: str,
        exit_status: int | None,
        *,
        message: str | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.component = component
        self.exit_status = exit_status
        merged = {"stage": "build", "component": component}
        if exit_status is not None:
            merged["returncode"] = str(exit_status)
        merged.update(context or {})
        if message is None:
            message = f"Build of {component} failed"
            if exit_status is not None:
                message += f" with exit status {exit_status}"
            message += "."
        super().__init__(
            message,
            code=ErrorCode.BUILD,
            hint=hint,
            context=merged,
        )


class StagingError(BootforgeError):
    def __init__(
        self,
        message: str,
        *,
        tool: str | None = None,
        exit_status: int | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
        code: ErrorCode = ErrorCode.STAGING,
    ) -> None:
        self.tool = tool
        self.exit_status = exit_status
        merged = {"stage": "stage"}
        if tool is not None:
            merged["tool"] = tool
        if exit_status is not None:
            merged["returncode"] = str(exit_status)
        merged.update(context or {})
        super().__init__(message, code=code, hint=hint, context=merged)


class CapacityError(StagingError):
    """The ESP payload does not fit in the fixed-size disk image."""

    def __init__(
        self,
        message: str,
        *,
        required: int | None = None,
        available: int | None = None,
        tool: str | None = None,
        exit_status: int | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.required = required
        self.available = available
        merged: dict[str, str] = {}
        if required is not None:
            merged["required_bytes"] = str(required)
        if available is not None:
            merged["available_bytes"] = str(available)
        merged.update(context or {})
        super().__init__(
            message,
            tool=tool,
            exit_status=exit_status,
            hint=hint,
            context=merged,
            code=ErrorCode.CAPACITY,
        )


class PackagingError(BootforgeError):
    def __init__(
        self,
        message: str,
        *,
        tool: str | None = None,
        exit_status: int | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.tool = tool
        self.exit_status = exit_status
        merged = {"stage": "package"}
        if tool is not None:
            merged["tool"] = tool
        if exit_status is not None:
            merged["returncode"] = str(exit_status)
        merged.update(context or {})
        super().__init__(message, code=ErrorCode.PACKAGING, hint=hint, context=merged)


class LaunchError(BootforgeError):
    def __init__(
        self,
        message: str,
        *,
        exit_status: int | None = None,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.exit_status = exit_status
        merged = {"stage": "launch"}
        if exit_status is not None:
            merged["returncode"] = str(exit_status)
        merged.update(context or {})
        super().__init__(message, code=ErrorCode.LAUNCH, hint=hint, context=merged)


__all__ = [
    "BootforgeError",
    "BuildError",
    "CapacityError",
    "ConfigurationError",
    "ErrorCode",
    "LaunchError",
    "PackagingError",
    "StagingError",
]

"""
Bundle Serialization Context.

Carries what the bundle writer needs beyond the stage itself: the bundle
configuration and, optionally, a sample input used to trace the stage into
an ONNX graph for the portable runtime. Contexts are process-local and are
never persisted with a parameter.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import torch

from ..core.config import BundleConfig


@dataclass(frozen=True)
class BundleContext:
    """
    Active portable-bundle writing session.

    Attributes:
        config: Manifest format and ONNX export settings.
        sample_input: Example batch traced into an ONNX graph. Without it
            bundles only carry the native payload.
    """

    config: BundleConfig = field(default_factory=BundleConfig)
    sample_input: torch.Tensor | None = None

    def with_sample_input(self, sample_input: torch.Tensor) -> BundleContext:
        """Return a copy of this context tracing graphs with *sample_input*."""
        return replace(self, sample_input=sample_input)

    @property
    def exports_graph(self) -> bool:
        return self.sample_input is not None

    def __repr__(self) -> str:
        shape = tuple(self.sample_input.shape) if self.sample_input is not None else None
        return f"BundleContext(format={self.config.format!r}, sample_shape={shape})"

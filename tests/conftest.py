"""
Shared fixtures for the Trellis test suite.

Provides real stages, save roots, and fakes for the bundle archive seam
that record every open/close so resource handling can be asserted.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest
import torch

from trellis.bundle import BundleBackend, BundleRegistry, OnnxGraphOp
from trellis.models import LinearStage


#                                Fakes                                        #
class FakeBundle:
    """Context-managed stand-in for BundleFile that tracks its own lifecycle."""

    def __init__(self, path, mode="r"):
        self.path = path
        self.mode = mode
        self.closed = True
        self.entered = False

    def __enter__(self):
        self.entered = True
        self.closed = False
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


class FakeBundleFactory:
    """Replaces the BundleFile class: records every bundle it hands out."""

    def __init__(self, present: bool = True):
        self.opened: list[FakeBundle] = []
        self.present = present

    def __call__(self, path, mode="r"):
        bundle = FakeBundle(path, mode)
        self.opened.append(bundle)
        return bundle

    def exists(self, path) -> bool:
        return self.present


class FakeSession:
    """Minimal onnxruntime.InferenceSession double."""

    def __init__(self, outputs=("output",)):
        self._outputs = list(outputs)
        self.calls = []

    def get_inputs(self):
        return [SimpleNamespace(name="input")]

    def get_outputs(self):
        return [SimpleNamespace(name=name) for name in self._outputs]

    def run(self, output_names, feed):
        self.calls.append((output_names, feed))
        batch = feed["input"].shape[0]
        return [np.full((batch, 1), float(i), dtype=np.float32) for i, _ in enumerate(output_names)]


#                                Fixtures                                     #
@pytest.fixture
def stage():
    """Small deterministic linear stage."""
    torch.manual_seed(0)
    return LinearStage(in_features=3, out_features=1, uid="linearstage_test01")


@pytest.fixture
def save_root(tmp_path) -> Path:
    """Directory used as the parameter's save root."""
    return tmp_path / "stages"


@pytest.fixture
def registry():
    """Registry isolated from the process-wide default."""
    return BundleRegistry().register(OnnxGraphOp())


@pytest.fixture
def fake_bundles():
    """Bundle factory reporting an existing archive at every path."""
    return FakeBundleFactory(present=True)


@pytest.fixture
def fake_backend(fake_bundles, registry):
    """BundleBackend wired to the fake archive factory and an isolated registry."""
    return BundleBackend(open_bundle=fake_bundles, registry=registry)


@pytest.fixture
def missing_bundles(registry):
    """BundleBackend that never finds an archive."""
    return BundleBackend(open_bundle=FakeBundleFactory(present=False), registry=registry)


@pytest.fixture
def fake_session():
    """onnxruntime session double with a single ``output``."""
    return FakeSession()


@pytest.fixture
def session_factory():
    """Build sessions with custom output names."""
    return FakeSession

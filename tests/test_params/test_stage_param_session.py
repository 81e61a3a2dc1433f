"""
Test Suite for StageParam identity and session state.

Covers the generic Param contract (validation, equality, hashing) and the
rule that save root, context and portable transformer are per-instance
runtime state that never leaks through copies or pickling.
"""

from __future__ import annotations

import copy
import pickle
from types import SimpleNamespace

import pytest
import torch

from trellis.bundle import BundleContext
from trellis.exceptions import TrellisConfigError
from trellis.params import Param, ParamPair, StageParam


# PARAM
@pytest.mark.unit
def test_param_parent_from_object():
    """Test a parent object contributes its uid."""
    param = Param(SimpleNamespace(uid="stage_7"), "maxIter", "iterations")

    assert param.parent == "stage_7"
    assert repr(param) == "stage_7__maxIter"


@pytest.mark.unit
def test_param_w_valid():
    """Test w() pairs the param with an accepted value."""
    param = Param("stage_7", "maxIter", "iterations", is_valid=lambda v: v > 0)

    pair = param.w(10)

    assert pair == ParamPair(param, 10)


@pytest.mark.unit
def test_param_w_invalid():
    """Test w() rejects values failing the predicate."""
    param = Param("stage_7", "maxIter", "iterations", is_valid=lambda v: v > 0)

    with pytest.raises(TrellisConfigError, match="maxIter"):
        param.w(-1)


@pytest.mark.unit
def test_param_json_codec():
    """Test the generic param encodes values as plain JSON."""
    param = Param("stage_7", "thresholds", "class thresholds")

    assert param.json_decode(param.json_encode([0.25, 0.75])) == [0.25, 0.75]


@pytest.mark.unit
def test_param_identity():
    """Test params are equal and hash alike by (parent, name) only."""
    a = Param("stage_7", "maxIter", "iterations")
    b = Param("stage_7", "maxIter", "other doc")
    c = Param("stage_8", "maxIter", "iterations")

    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b, c}) == 2


# STAGE PARAM: SESSION
@pytest.mark.unit
def test_stage_param_equality_ignores_session(tmp_path):
    """Test session state does not take part in equality."""
    a = StageParam("pipe_1", "sparkStage", "wrapped stage")
    b = StageParam("pipe_1", "sparkStage", "wrapped stage")
    a.save_path = tmp_path
    a.context = BundleContext()

    assert a == b
    assert hash(a) == hash(b)


@pytest.mark.unit
def test_stage_param_save_path_stringified(tmp_path):
    """Test save roots given as Path are stored as strings."""
    param = StageParam("pipe_1", "sparkStage", "wrapped stage")
    param.save_path = tmp_path

    assert param.save_path == str(tmp_path)

    param.save_path = None
    assert param.save_path is None


@pytest.mark.unit
def test_stage_param_defaults_accept_any_stage(stage):
    """Test the default predicate accepts stages and None."""
    param = StageParam("pipe_1", "sparkStage", "wrapped stage")

    assert param.w(stage).value is stage
    assert param.w(None).value is None


# STAGE PARAM: COPIES
@pytest.mark.unit
@pytest.mark.parametrize("clone", [StageParam.copy, copy.copy, copy.deepcopy])
def test_copy_starts_with_fresh_session(clone, tmp_path):
    """Test clones keep identity and backends but not session state."""
    original = StageParam("pipe_1", "sparkStage", "wrapped stage")
    original.save_path = tmp_path
    original.context = BundleContext()
    original.local_transformer = SimpleNamespace(uid="x")

    cloned = clone(original)

    assert cloned == original
    assert cloned.bundles is original.bundles
    assert cloned.native is original.native
    assert cloned.save_path is None
    assert cloned.context is None
    assert cloned.local_transformer is None


@pytest.mark.unit
def test_copy_session_is_isolated(tmp_path):
    """Test changing a clone's save root leaves the original untouched."""
    original = StageParam("pipe_1", "sparkStage", "wrapped stage")
    original.save_path = tmp_path / "a"
    cloned = original.copy()

    cloned.save_path = tmp_path / "b"

    assert original.save_path == str(tmp_path / "a")


# STAGE PARAM: PICKLING
@pytest.mark.unit
def test_pickle_drops_context_and_transformer(tmp_path):
    """Test pickling keeps the save root and drops live runtime objects."""
    param = StageParam("pipe_1", "sparkStage", "wrapped stage")
    param.save_path = tmp_path
    param.context = BundleContext().with_sample_input(torch.zeros(1, 3))

    restored = pickle.loads(pickle.dumps(param))

    assert restored == param
    assert restored.save_path == str(tmp_path)
    assert restored.context is None
    assert restored.local_transformer is None
    assert param.context is not None


class ScoredStageParam(StageParam):
    """StageParam subclass used to check clones keep their type."""


@pytest.mark.unit
@pytest.mark.parametrize("clone", [StageParam.copy, copy.copy, copy.deepcopy])
def test_copy_keeps_subclass(clone):
    """Test clones of a StageParam subclass are instances of that subclass."""
    original = ScoredStageParam("pipe_1", "sparkStage", "wrapped stage")

    cloned = clone(original)

    assert type(cloned) is ScoredStageParam
    assert cloned == original

"""
Test Suite for StageParam decoding.

Covers the bundle-first decode (native and portable branches), the legacy
descriptor chain, malformed input, and the session state a decode leaves
behind on the parameter.
"""

from __future__ import annotations

import json
import zipfile
from unittest.mock import MagicMock, patch

import pytest

from trellis.bundle import (
    LocalFileSystem,
    TreeEnsembleClassificationOp,
    TreeEnsembleRegressionOp,
)
from trellis.core.paths import KNOWN_BAD_LEGACY_CLASS
from trellis.exceptions import (
    TrellisClassResolutionError,
    TrellisLoadError,
    TrellisMalformedInputError,
)
from trellis.models import LinearStage
from trellis.params import StageParam
from trellis.stages import ClassResolver

LINEAR_CLASS = "trellis.models.heads.LinearStage"


def _param(**kwargs) -> StageParam:
    return StageParam("pipeline_model_01", "sparkStage", "wrapped stage", **kwargs)


def _descriptor(**fields) -> str:
    return json.dumps(fields)


# DECODE: MALFORMED AND EMPTY
@pytest.mark.unit
@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"', "42", ""])
def test_decode_malformed_returns_none(raw):
    """Test unrecognized descriptors decode to an empty parameter."""
    assert _param().json_decode(raw) is None


@pytest.mark.unit
def test_decode_portable_malformed_raises():
    """Test the bundle-only decode reports malformed input."""
    with pytest.raises(TrellisMalformedInputError):
        _param().decode_portable("not json")


@pytest.mark.unit
def test_decode_empty_sentinel(fake_backend, fake_bundles):
    """Test the canonical empty descriptor decodes to None without I/O."""
    param = _param(bundles=fake_backend)

    assert param.json_decode('{"className":"","uid":""}') is None
    assert fake_bundles.opened == []


@pytest.mark.unit
def test_decode_empty_sentinel_with_path(fake_backend, fake_bundles, tmp_path):
    """Test an augmented empty descriptor still decodes to None."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className="", uid="", path=str(tmp_path), asSpark=True)

    assert param.json_decode(raw) is None
    assert param.save_path is None
    assert fake_bundles.opened == []


@pytest.mark.unit
def test_decode_without_path_clears_save_path(missing_bundles, tmp_path):
    """Test a current-format descriptor resets the parameter's save root."""
    param = _param(bundles=missing_bundles)
    param.save_path = tmp_path

    assert param.json_decode(_descriptor(className=LINEAR_CLASS, uid="linear_1")) is None
    assert param.save_path is None


@pytest.mark.unit
def test_decode_with_path_sets_save_path(missing_bundles, tmp_path):
    """Test an augmented descriptor records its save root on the parameter."""
    param = _param(bundles=missing_bundles)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=False)

    assert param.json_decode(raw) is None
    assert param.save_path == str(tmp_path)


# DECODE: BUNDLE BRANCHES
@pytest.mark.unit
def test_decode_bundle_native_branch(fake_backend, fake_bundles, stage, tmp_path):
    """Test asSpark=true serves the bundle as a native stage."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path), asSpark=True)

    with patch.object(fake_backend, "load_native", return_value=stage) as load_native:
        result = param.json_decode(raw)

    assert result is stage
    assert param.local_transformer is None
    load_native.assert_called_once_with(fake_bundles.opened[0])
    assert fake_bundles.opened[0].mode == "r"
    assert fake_bundles.opened[0].closed


@pytest.mark.unit
def test_decode_missing_as_spark_defaults_to_native(fake_backend, stage, tmp_path):
    """Test a descriptor without asSpark is served natively."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path))

    with patch.object(fake_backend, "load_native", return_value=stage):
        assert param.json_decode(raw) is stage


@pytest.mark.unit
def test_decode_bundle_portable_branch(fake_backend, fake_bundles, registry, tmp_path):
    """Test asSpark=false publishes a portable transformer and returns None."""
    param = _param(bundles=fake_backend)
    transformer = MagicMock(uid="linear_1")
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=False)

    with patch.object(fake_backend, "load_portable", return_value=transformer):
        result = param.json_decode(raw)

    assert result is None
    assert param.local_transformer is transformer
    assert param.local_transformer.uid == "linear_1"
    assert TreeEnsembleRegressionOp.name in registry
    assert TreeEnsembleClassificationOp.name in registry
    assert fake_bundles.opened[0].closed


@pytest.mark.unit
def test_decode_known_bad_class_served_portably(fake_backend, tmp_path):
    """Test the known-bad model type never loads natively from a bundle."""
    param = _param(bundles=fake_backend)
    transformer = MagicMock(uid="forest_1")
    raw = _descriptor(className=KNOWN_BAD_LEGACY_CLASS, uid="forest_1", path=str(tmp_path), asSpark=True)

    with (
        patch.object(fake_backend, "load_native") as load_native,
        patch.object(fake_backend, "load_portable", return_value=transformer),
    ):
        result = param.json_decode(raw)

    assert result is None
    assert param.local_transformer is transformer
    load_native.assert_not_called()


@pytest.mark.unit
def test_decode_portable_returns_tagged_result(fake_backend, stage, tmp_path):
    """Test decode_portable reports which branch produced the value."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path), asSpark=True)

    with patch.object(fake_backend, "load_native", return_value=stage):
        decoded = param.decode_portable(raw)

    assert decoded.kind == "native"
    assert decoded.value is stage


@pytest.mark.unit
def test_decode_portable_declines_without_bundle(missing_bundles, tmp_path):
    """Test decode_portable returns None when nothing exists at path/uid."""
    param = _param(bundles=missing_bundles)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=True)

    assert param.decode_portable(raw) is None


@pytest.mark.unit
def test_decode_bundle_failure_raises_load_error(fake_backend, fake_bundles, tmp_path):
    """Test a failing bundle reader surfaces as TrellisLoadError and releases the archive."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=True)

    with patch.object(fake_backend, "load_native", side_effect=RuntimeError("corrupt zip")):
        with pytest.raises(TrellisLoadError, match="linear_1") as exc_info:
            param.json_decode(raw)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert fake_bundles.opened[0].closed


@pytest.mark.unit
def test_decode_bundle_archive_location(fake_backend, fake_bundles, stage, tmp_path):
    """Test the archive is looked up at the qualified path/uid."""
    param = _param(bundles=fake_backend)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path), asSpark=True)

    with patch.object(fake_backend, "load_native", return_value=stage):
        param.json_decode(raw)

    expected = LocalFileSystem().make_qualified(tmp_path / stage.uid)
    assert fake_bundles.opened[0].path == expected


@pytest.mark.unit
def test_decode_prefers_bundle_over_legacy(fake_backend, stage, tmp_path):
    """Test the legacy chain is not consulted when a bundle serves the stage."""
    resolver = MagicMock(spec=ClassResolver)
    param = _param(bundles=fake_backend, resolver=resolver)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path), asSpark=True)

    with patch.object(fake_backend, "load_native", return_value=stage):
        param.json_decode(raw)

    resolver.reader_for.assert_not_called()


# DECODE: LEGACY CHAIN
@pytest.mark.unit
def test_decode_legacy_known_bad_absent(missing_bundles, tmp_path):
    """Test the known-bad class is never reloaded through reflection."""
    resolver = MagicMock(spec=ClassResolver)
    param = _param(bundles=missing_bundles, resolver=resolver)
    raw = _descriptor(className=KNOWN_BAD_LEGACY_CLASS, uid="forest_1", path=str(tmp_path), asSpark=True)

    assert param.json_decode(raw) is None
    resolver.reader_for.assert_not_called()


@pytest.mark.unit
def test_decode_legacy_portable_flag_absent(missing_bundles, tmp_path):
    """Test asSpark=false without a bundle yields an empty parameter."""
    resolver = MagicMock(spec=ClassResolver)
    param = _param(bundles=missing_bundles, resolver=resolver)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=False)

    assert param.json_decode(raw) is None
    resolver.reader_for.assert_not_called()


@pytest.mark.unit
def test_decode_legacy_uses_class_reader(missing_bundles, stage, tmp_path):
    """Test the legacy chain loads path/uid through the class's reader."""
    reader = MagicMock()
    reader.load.return_value = stage
    resolver = MagicMock(spec=ClassResolver)
    resolver.reader_for.return_value = reader
    param = _param(bundles=missing_bundles, resolver=resolver)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(tmp_path), asSpark=True)

    assert param.json_decode(raw) is stage
    resolver.reader_for.assert_called_once_with(LINEAR_CLASS)
    reader.load.assert_called_once_with(str(tmp_path / stage.uid))


@pytest.mark.unit
def test_decode_legacy_unresolvable_class(missing_bundles, tmp_path):
    """Test an unknown class name propagates as a resolution error."""
    param = _param(bundles=missing_bundles)
    raw = _descriptor(className="no_such_pkg.models.Ghost", uid="ghost_1", path=str(tmp_path), asSpark=True)

    with pytest.raises(TrellisClassResolutionError):
        param.json_decode(raw)


@pytest.mark.unit
def test_decode_legacy_missing_directory(missing_bundles, tmp_path):
    """Test a resolvable class with no archive on disk raises TrellisLoadError."""
    param = _param(bundles=missing_bundles)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_gone", path=str(tmp_path), asSpark=True)

    with pytest.raises(TrellisLoadError) as exc_info:
        param.json_decode(raw)

    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


@pytest.mark.unit
def test_decode_legacy_missing_class_name(missing_bundles, tmp_path):
    """Test a loadable legacy descriptor without className is malformed."""
    param = _param(bundles=missing_bundles)
    raw = _descriptor(uid="linear_1", path=str(tmp_path), asSpark=True)

    with pytest.raises(TrellisMalformedInputError):
        param.json_decode(raw)


@pytest.mark.unit
def test_decode_legacy_reader_returns_non_stage(missing_bundles, tmp_path):
    """Test a reader returning something other than a stage is rejected."""
    reader = MagicMock()
    reader.load.return_value = {"not": "a stage"}
    resolver = MagicMock(spec=ClassResolver)
    resolver.reader_for.return_value = reader
    param = _param(bundles=missing_bundles, resolver=resolver)
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(tmp_path), asSpark=True)

    with pytest.raises(TrellisLoadError, match="dict"):
        param.json_decode(raw)


# DECODE: REAL ARCHIVES
@pytest.mark.integration
def test_decode_native_directory(stage, save_root):
    """Test a native directory is reloaded through the legacy reflection path."""
    stage.write().save(save_root / stage.uid)
    raw = _descriptor(className=LINEAR_CLASS, uid=stage.uid, path=str(save_root), asSpark=True)

    loaded = _param().json_decode(raw)

    assert isinstance(loaded, LinearStage)
    assert loaded.uid == stage.uid
    for key, value in stage.state_dict().items():
        assert loaded.state_dict()[key].equal(value)


# DECODE: DAMAGED ARCHIVES
@pytest.mark.unit
@pytest.mark.parametrize("as_spark", [None, True, False])
def test_decode_truncated_archive_raises(save_root, as_spark):
    """Test a corrupt file at path/uid is a load failure, never an empty parameter."""
    save_root.mkdir()
    (save_root / "linear_1").write_bytes(b"PK\x03\x04truncated-garbage")
    fields = {"className": LINEAR_CLASS, "uid": "linear_1", "path": str(save_root)}
    if as_spark is not None:
        fields["asSpark"] = as_spark
    param = _param()

    with pytest.raises(TrellisLoadError, match="linear_1"):
        param.json_decode(_descriptor(**fields))

    assert param.local_transformer is None


@pytest.mark.unit
def test_decode_zip_without_manifest_raises(save_root):
    """Test a zip lacking the bundle manifest is a load failure."""
    save_root.mkdir()
    with zipfile.ZipFile(save_root / "linear_1", "w") as zf:
        zf.writestr("other.txt", "x")
    raw = _descriptor(className=LINEAR_CLASS, uid="linear_1", path=str(save_root), asSpark=False)

    with pytest.raises(TrellisLoadError, match="incomplete"):
        _param().json_decode(raw)

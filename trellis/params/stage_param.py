"""
Stage Parameter Codec.

:class:`StageParam` lets a pipeline parameter hold an optional
:class:`~trellis.stages.base.PipelineStage` while the enclosing params
serializer only ever sees a small JSON descriptor. The stage payload is
written out-of-band under a save root, keyed by uid:

- bundle backend, when a :class:`~trellis.bundle.BundleContext` is active;
- native backend otherwise.

Decoding treats any file at ``path/uid`` as a bundle (native stage, or
portable transformer published on :attr:`StageParam.local_transformer`);
a file that is not a readable bundle raises. Only when nothing or a native
directory sits there does decoding fall back to the legacy descriptor chain.

Session state (save root, context, last portable transformer) belongs to
one parameter instance, is never serialized and never takes part in
equality. Clones of a pipeline stage must use :meth:`StageParam.copy`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Literal, NamedTuple, TypeVar

from ..bundle import BundleBackend, BundleContext, LocalFileSystem, NativeBackend
from ..bundle.runtime import PortableTransformer
from ..core.logger import LogStyle
from ..core.paths import KNOWN_BAD_LEGACY_CLASS, LOGGER_NAME, stage_path
from ..exceptions import (
    TrellisConfigError,
    TrellisError,
    TrellisLoadError,
    TrellisMalformedInputError,
    TrellisPreconditionError,
    TrellisWriteError,
)
from ..stages import ClassResolver, PipelineStage, default_resolver, qualified_class_name
from .descriptor import (
    LegacyAction,
    StageDescriptor,
    empty_descriptor,
    match_legacy,
    stage_descriptor,
)

logger = logging.getLogger(LOGGER_NAME)

T = TypeVar("T")


def always_valid(_: Any) -> bool:
    return True


# GENERIC PARAM
class ParamPair(NamedTuple):
    param: Param
    value: Any


class Param(Generic[T]):
    """
    A named, documented parameter of a pipeline stage.

    Params are identified by ``(parent, name)``; two params with the same
    identity are equal regardless of any runtime state they carry.

    Args:
        parent: Owning stage uid, or any object with a ``uid`` attribute.
        name: Parameter name (the key in params metadata).
        doc: Human-readable description.
        is_valid: Predicate accepted values must satisfy.
    """

    def __init__(
        self,
        parent: Any,
        name: str,
        doc: str,
        is_valid: Callable[[T], bool] | None = None,
    ) -> None:
        self.parent: str = parent if isinstance(parent, str) else parent.uid
        self.name = name
        self.doc = doc
        self.is_valid: Callable[[T], bool] = is_valid or always_valid

    def w(self, value: T) -> ParamPair:
        """
        Pair this param with *value*.

        Raises:
            TrellisConfigError: If *value* fails ``is_valid``.
        """
        if not self.is_valid(value):
            raise TrellisConfigError(f"{self.parent} parameter {self.name} given invalid value {value!r}")
        return ParamPair(self, value)

    def json_encode(self, value: T) -> str:
        return json.dumps(value)

    def json_decode(self, json_str: str) -> T:
        return json.loads(json_str)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Param):
            return NotImplemented
        return (self.parent, self.name) == (other.parent, other.name)

    def __hash__(self) -> int:
        return hash((self.parent, self.name))

    def __repr__(self) -> str:
        return f"{self.parent}__{self.name}"


# STAGE PARAM
@dataclass
class StageParamSession:
    """Runtime companion state of a :class:`StageParam` (never persisted)."""

    save_path: str | None = None
    context: BundleContext | None = None
    local_transformer: PortableTransformer | None = None


class DecodedStage(NamedTuple):
    """Result of :meth:`StageParam.decode_portable`."""

    kind: Literal["native", "portable"]
    value: Any


class StageParam(Param["PipelineStage | None"]):
    """
    Parameter holding an optional pipeline stage.

    Args:
        parent: Owning stage uid, or any object with a ``uid`` attribute.
        name: Parameter name.
        doc: Human-readable description.
        is_valid: Predicate on the optional stage.
        native: Native backend (directory per stage).
        bundles: Bundle backend (zip bundle per stage + portable runtime).
        resolver: Class resolution service for legacy descriptors.
        filesystem: Path qualification for archive locations.

    Example:
        >>> param = StageParam(parent, "sparkStage", "wrapped stage")
        >>> param.save_path = "/models/run_1"
        >>> descriptor = param.json_encode(stage)
    """

    def __init__(
        self,
        parent: Any,
        name: str,
        doc: str,
        is_valid: Callable[[PipelineStage | None], bool] | None = None,
        *,
        native: NativeBackend | None = None,
        bundles: BundleBackend | None = None,
        resolver: ClassResolver | None = None,
        filesystem: LocalFileSystem | None = None,
    ) -> None:
        super().__init__(parent, name, doc, is_valid)
        self.resolver = resolver or default_resolver
        self.native = native or NativeBackend(self.resolver)
        self.bundles = bundles or BundleBackend(resolver=self.resolver)
        self.filesystem = filesystem or LocalFileSystem()
        self.session = StageParamSession()

    # SESSION ACCESSORS
    @property
    def save_path(self) -> str | None:
        """Directory root under which stage archives are written."""
        return self.session.save_path

    @save_path.setter
    def save_path(self, value: str | Path | None) -> None:
        self.session.save_path = None if value is None else str(value)

    @property
    def context(self) -> BundleContext | None:
        """Active bundle context; None selects the native backend."""
        return self.session.context

    @context.setter
    def context(self, value: BundleContext | None) -> None:
        self.session.context = value

    @property
    def local_transformer(self) -> PortableTransformer | None:
        """Transformer from the last decode that could only be served portably."""
        return self.session.local_transformer

    @local_transformer.setter
    def local_transformer(self, value: PortableTransformer | None) -> None:
        self.session.local_transformer = value

    # ENCODE
    def json_encode(self, value: PipelineStage | None) -> str:
        """
        Write the stage out-of-band and return its descriptor.

        Raises:
            TrellisPreconditionError: If a stage is given but no save root is set.
            TrellisWriteError: If the active backend fails to persist the stage.
        """
        if value is None:
            return empty_descriptor()

        save_path = self.session.save_path
        if save_path is None:
            logger.error(f"{LogStyle.FAILURE} No save path configured for stage '{value.uid}'")
            raise TrellisPreconditionError(
                f"Path must be set before stage '{value.uid}' can be saved"
            )

        context = self.session.context
        if context is not None:
            self._write_bundle(value, save_path, context)
        else:
            self._write_native(value, save_path)

        return stage_descriptor(qualified_class_name(value), value.uid)

    def _write_bundle(self, stage: PipelineStage, save_path: str, context: BundleContext) -> None:
        archive = self.filesystem.make_qualified(stage_path(save_path, stage.uid))
        fmt = context.config.format
        try:
            with self.bundles.open(archive, mode="w") as bundle:
                if not self.bundles.write(stage, bundle, fmt, context):
                    raise TrellisWriteError(
                        f"Failed to write {stage.uid} to {save_path} with context {context}"
                    )
        except TrellisError:
            logger.error(f"{LogStyle.FAILURE} Bundle write failed for '{stage.uid}' → {archive}")
            raise
        except Exception as e:  # backends raise torch, onnx and OS errors alike
            logger.error(f"{LogStyle.FAILURE} Bundle write failed for '{stage.uid}' → {archive}: {e}")
            raise TrellisWriteError(
                f"Failed to write {stage.uid} to {save_path} with context {context}: {e}"
            ) from e

        logger.info(
            f"{LogStyle.INDENT}{LogStyle.SUCCESS} Bundle saved      : {stage.uid} → {archive}"
        )

    def _write_native(self, stage: PipelineStage, save_path: str) -> None:
        target = stage_path(save_path, stage.uid)
        try:
            self.native.write(stage, target)
        except Exception as e:  # backends raise torch and OS errors alike
            logger.error(f"{LogStyle.FAILURE} Native write failed for '{stage.uid}' → {target}: {e}")
            raise TrellisWriteError(f"Failed to write {stage.uid} to {target}: {e}") from e

        logger.info(
            f"{LogStyle.INDENT}{LogStyle.SUCCESS} Native saved      : {stage.uid} → {target}"
        )

    # DECODE
    def json_decode(self, json_str: str) -> PipelineStage | None:
        """
        Reconstruct the stage referenced by a descriptor.

        Returns None both for an empty parameter and for a stage that could
        only be served portably; in the latter case :attr:`local_transformer`
        holds it.

        Raises:
            TrellisLoadError: If an archive exists but cannot be reconstructed.
            TrellisClassResolutionError: If a legacy descriptor names an
                unresolvable class.
            TrellisMalformedInputError: If a legacy descriptor that must be
                loaded carries no class name.
        """
        try:
            descriptor = StageDescriptor.parse(json_str)
        except TrellisMalformedInputError as e:
            logger.warning(f"{LogStyle.WARNING} Unrecognized stage descriptor, treating as empty: {e}")
            return None

        decoded = self._decode_portable(descriptor)
        if decoded is not None:
            if decoded.kind == "portable":
                self.session.local_transformer = decoded.value
                return None
            return decoded.value

        return self._decode_legacy(descriptor)

    def decode_portable(self, json_str: str) -> DecodedStage | None:
        """
        Load the bundle referenced by a descriptor.

        Returns:
            ``DecodedStage("native", stage)`` or ``DecodedStage("portable",
            transformer)``; None when the descriptor carries no path/uid, is
            the empty sentinel, or no file exists at ``path/uid`` (nothing, or
            a native stage directory).

        Raises:
            TrellisMalformedInputError: If *json_str* is not a JSON object.
            TrellisLoadError: If a file exists at ``path/uid`` but cannot be
                loaded as a bundle.
        """
        return self._decode_portable(StageDescriptor.parse(json_str))

    def _decode_portable(self, descriptor: StageDescriptor) -> DecodedStage | None:
        if descriptor.path is None or descriptor.uid is None or descriptor.is_empty:
            self.session.save_path = None
            return None

        self.session.save_path = descriptor.path
        archive = self.filesystem.make_qualified(stage_path(descriptor.path, descriptor.uid))
        if not self.bundles.exists(archive):
            logger.debug(f"No bundle file at {archive}, trying legacy formats")
            return None

        as_native = True if descriptor.as_native is None else descriptor.as_native
        # TODO: drop the known-bad exclusion once no pre-0.2 forest bundles remain in model stores
        serve_native = as_native and descriptor.class_name != KNOWN_BAD_LEGACY_CLASS

        try:
            with self.bundles.open(archive, mode="r") as bundle:
                if serve_native:
                    result = DecodedStage("native", self.bundles.load_native(bundle))
                else:
                    self.bundles.register_tree_ensemble_ops()
                    result = DecodedStage("portable", self.bundles.load_portable(bundle))
        except Exception as e:  # wrap every backend failure with the archive location
            logger.error(f"{LogStyle.FAILURE} Failed to load bundle {archive}: {e}")
            raise TrellisLoadError(
                f"Failed to load stage '{descriptor.uid}' from {archive} because of: {e}"
            ) from e

        logger.info(
            f"{LogStyle.INDENT}{LogStyle.SUCCESS} Bundle loaded     : "
            f"{descriptor.uid} ({result.kind})"
        )
        return result

    def _decode_legacy(self, descriptor: StageDescriptor) -> PipelineStage | None:
        outcome = match_legacy(descriptor)
        if outcome.action is not LegacyAction.LOAD:
            return None

        if descriptor.class_name is None:
            raise TrellisMalformedInputError(
                f"Legacy descriptor for stage '{descriptor.uid}' has no className"
            )

        reader = self.resolver.reader_for(descriptor.class_name)
        target = str(outcome.archive_path)
        try:
            stage = reader.load(target)
        except Exception as e:  # readers are third-party code
            logger.error(f"{LogStyle.FAILURE} Legacy load failed for {target}: {e}")
            raise TrellisLoadError(
                f"Failed to load {descriptor.class_name} from {target}: {e}"
            ) from e

        if not isinstance(stage, PipelineStage):
            raise TrellisLoadError(
                f"Reader for {descriptor.class_name} returned {type(stage).__name__}, "
                "not a pipeline stage"
            )

        logger.info(f"{LogStyle.INDENT}{LogStyle.SUCCESS} Legacy loaded     : {stage.uid}")
        return stage

    # CLONING
    def copy(self) -> StageParam:
        """Same identity, type and backends, fresh empty session."""
        return type(self)(
            self.parent,
            self.name,
            self.doc,
            self.is_valid,
            native=self.native,
            bundles=self.bundles,
            resolver=self.resolver,
            filesystem=self.filesystem,
        )

    def __copy__(self) -> StageParam:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> StageParam:
        return self.copy()

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        # Contexts hold live tensors and transformers hold runtime sessions
        state["session"] = StageParamSession(
            save_path=self.session.save_path,
            local_transformer=None,
        )
        return state

"""Settings shared by storage implementations when appending to a log."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from tlogtiles.layout import entries_path
from tlogtiles.merkle import empty_root

DEFAULT_BATCH_MAX_SIZE = 256
"""Maximum number of entries in a batch unless with_batching says otherwise."""

DEFAULT_BATCH_MAX_AGE = 0.25
"""Maximum age of a batch, in seconds, unless with_batching says otherwise."""

DEFAULT_CHECKPOINT_INTERVAL = 10.0
"""Seconds between checkpoint publications unless with_checkpoint_interval says otherwise."""

DEFAULT_PUSHBACK_MAX_OUTSTANDING = 4096
"""In-flight entries allowed before pushing back, unless with_pushback says otherwise."""

AddFn = Callable[..., Callable[[], Any]]
AddDecorator = Callable[[AddFn], AddFn]
CheckpointBuilder = Callable[[int, bytes], bytes]


@dataclass
class WitnessOptions:
    """Optional settings for how a witness group policy is applied."""

    fail_open: bool = False
    """Publish a checkpoint even if the witness policy could not be satisfied."""


@dataclass
class AppendOptions:
    """Settings for logs that sequence and integrate new entries.

    The ``with_*`` methods update the options in place and return them, so calls
    can be chained.
    """

    batch_max_size: int = DEFAULT_BATCH_MAX_SIZE
    batch_max_age: float = DEFAULT_BATCH_MAX_AGE
    pushback_max_outstanding: int = DEFAULT_PUSHBACK_MAX_OUTSTANDING
    checkpoint_interval: float = DEFAULT_CHECKPOINT_INTERVAL
    entries_path: Callable[[int, int], str] = entries_path
    new_checkpoint: CheckpointBuilder | None = None
    witnesses: Any = None
    witness_options: WitnessOptions = field(default_factory=WitnessOptions)
    decorators: list[AddDecorator] = field(default_factory=list)

    def with_batching(self, max_size: int, max_age: float) -> AppendOptions:
        """Flush a batch once it holds ``max_size`` entries or its first is ``max_age`` seconds old."""
        self.batch_max_size = max_size
        self.batch_max_age = max_age
        return self

    def with_pushback(self, max_outstanding: int) -> AppendOptions:
        """Push back on adds once ``max_outstanding`` sequenced entries await integration."""
        self.pushback_max_outstanding = max_outstanding
        return self

    def with_checkpoint_interval(self, interval: float) -> AppendOptions:
        """Attempt to publish a new checkpoint every ``interval`` seconds."""
        self.checkpoint_interval = interval
        return self

    def with_witnesses(self, witnesses: Any, opts: WitnessOptions | None = None) -> AppendOptions:
        """Set the witness group to counter-sign checkpoints, with optional settings."""
        self.witnesses = witnesses
        self.witness_options = opts if opts is not None else WitnessOptions()
        return self

    def with_checkpoint_builder(self, new_checkpoint: CheckpointBuilder) -> AppendOptions:
        """Set the function that formats and signs a checkpoint for ``(size, root)``.

        For a zero-sized tree the root passed on is always the empty-tree root.
        """

        def build(size: int, root: bytes) -> bytes:
            if size == 0:
                root = empty_root()
            return new_checkpoint(size, root)

        self.new_checkpoint = build
        return self

    def add_decorator(self, decorator: AddDecorator) -> AppendOptions:
        """Register a wrapper around the add function; earlier ones end up outermost."""
        self.decorators.append(decorator)
        return self

    def decorate(self, add: AddFn) -> AddFn:
        """Wrap ``add`` with every registered decorator."""
        for decorator in reversed(self.decorators):
            add = decorator(add)
        return add

    def validate(self) -> None:
        """Raise ValueError if the options cannot be used to append to a log."""
        if self.new_checkpoint is None:
            raise ValueError("invalid AppendOptions: a checkpoint builder must be set")
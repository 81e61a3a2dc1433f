"""
Ready-made Pipeline Stages.

Small dense heads that are common as the final stage of a pipeline. They
double as reference implementations of the :class:`PipelineStage`
contract: every constructor argument except ``uid`` is returned by
``get_config`` so the native and bundle readers can rebuild them.
"""

from __future__ import annotations

from typing import Any

import torch
import torch.nn as nn

from ..stages import PipelineStage


class LinearStage(PipelineStage):
    """Single affine layer (linear or logistic regression head)."""

    def __init__(self, in_features: int, out_features: int = 1, uid: str | None = None) -> None:
        super().__init__(uid=uid)
        self.in_features = in_features
        self.out_features = out_features
        self.linear = nn.Linear(in_features, out_features)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.linear(x)

    def get_config(self) -> dict[str, Any]:
        return {"in_features": self.in_features, "out_features": self.out_features}


class MLPStage(PipelineStage):
    """
    Multi-layer perceptron head.

    Args:
        in_features: Input width.
        hidden: Widths of the hidden layers, in order.
        out_features: Output width.
        dropout: Dropout probability after each hidden activation.
        uid: Stage identifier (generated when omitted).
    """

    def __init__(
        self,
        in_features: int,
        hidden: list[int] | tuple[int, ...] = (32,),
        out_features: int = 1,
        dropout: float = 0.0,
        uid: str | None = None,
    ) -> None:
        super().__init__(uid=uid)
        self.in_features = in_features
        self.hidden = list(hidden)
        self.out_features = out_features
        self.dropout = dropout

        layers: list[nn.Module] = []
        width = in_features
        for size in self.hidden:
            layers.append(nn.Linear(width, size))
            layers.append(nn.ReLU())
            if dropout > 0:
                layers.append(nn.Dropout(dropout))
            width = size
        layers.append(nn.Linear(width, out_features))
        self.net = nn.Sequential(*layers)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(x)

    def get_config(self) -> dict[str, Any]:
        return {
            "in_features": self.in_features,
            "hidden": self.hidden,
            "out_features": self.out_features,
            "dropout": self.dropout,
        }

"""Training pipeline: prepared data in, immutable ALSModel out."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .data import PreparedData, aggregate_view_events, create_sparse_matrix
from .errors import ConfigurationError
from .implicit_als import ImplicitALS, ImplicitALSConfig
from .index import BiMap
from .metrics import evaluate_model_safely
from .model import ALSModel
from .ranking import PredictedResult, Query, predict

logger = logging.getLogger(__name__)

# Confidence scaling used for view counts
IMPLICIT_ALPHA = 1.0


def _coerce(key: str, value: Any, kind: type) -> Any:
    """Convert a JSON parameter value, rejecting anything that is not a clean number."""
    if value is None and key == 'seed':
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Parameter {key!r} must be a number, got {value!r}")
    try:
        converted = kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter {key!r} must be {kind.__name__}, got {value!r}") from None
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"Parameter {key!r} must be int, got {value!r}")
    return converted


@dataclass
class ALSAlgorithmParams:
    rank: int = 10
    num_iterations: int = 20
    lambda_: float = 0.01
    seed: Optional[int] = None
    n_jobs: int = -1

    _ALIASES = {'numIterations': 'num_iterations', 'lambda': 'lambda_', 'nJobs': 'n_jobs'}
    _TYPES = {'rank': int, 'num_iterations': int, 'lambda_': float, 'seed': int, 'n_jobs': int}

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> 'ALSAlgorithmParams':
        """Accepts engine-style keys (numIterations, lambda) or field names."""
        kwargs = {}
        for key, value in params.items():
            name = cls._ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ConfigurationError(f"Unknown algorithm parameter {key!r}")
            kwargs[name] = _coerce(key, value, cls._TYPES[name])
        return cls(**kwargs)

    def to_config(self) -> ImplicitALSConfig:
        return ImplicitALSConfig(
            n_factors=self.rank,
            regularisation=self.lambda_,
            alpha=IMPLICIT_ALPHA,
            n_iterations=self.num_iterations,
            n_jobs=self.n_jobs,
            random_state=self.seed
        )


class ALSAlgorithm:

    def __init__(self, params: ALSAlgorithmParams):
        self.params = params
        self.training_metrics: Optional[Dict[str, float]] = None

    def train(self, data: PreparedData) -> ALSModel:
        data.validate()
        config = self.params.to_config()
        config.validate()

        user_string_int_map = BiMap.string_int(data.users.keys())
        item_string_int_map = BiMap.string_int(data.items.keys())

        interactions = aggregate_view_events(
            data.view_events, user_string_int_map, item_string_int_map
        )
        R = create_sparse_matrix(interactions, len(user_string_int_map), len(item_string_int_map))

        logger.info(
            f"Training with parameters [rank: {self.params.rank}, "
            f"num iterations: {self.params.num_iterations}, "
            f"lambda: {self.params.lambda_}]\n"
            f"Event count: {len(data.view_events)}"
        )

        als = ImplicitALS(config).fit(R)

        model = ALSModel(
            rank=config.n_factors,
            user_features={
                int(u): als.user_factors[u] for u in als.user_has_data.nonzero()[0]
            },
            product_features={
                int(i): als.item_factors[i] for i in als.item_has_data.nonzero()[0]
            },
            user_string_int_map=user_string_int_map,
            item_string_int_map=item_string_int_map
        )

        self.training_metrics = evaluate_model_safely(model, interactions)
        if self.training_metrics is not None:
            logger.info(f"Training metrics {self.training_metrics}.")

        return model

    def predict(self, model: ALSModel, query: Query) -> PredictedResult:
        return predict(model, query)

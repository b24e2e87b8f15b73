"""Implicit-feedback ALS product ranking."""

from .algorithm import ALSAlgorithm, ALSAlgorithmParams
from .data import (
    Interaction,
    PreparedData,
    ViewEvent,
    aggregate_view_events,
    create_sparse_matrix,
    load_prepared_data,
    train_test_split_by_user
)
from .errors import ConfigurationError
from .implicit_als import ImplicitALS, ImplicitALSConfig
from .index import BiMap
from .metrics import (
    average_precision,
    evaluate_model_safely,
    evaluate_ranking,
    ndcg_at_k,
    precision_at_k
)
from .model import ALSModel, ModelStore
from .ranking import ItemScore, PredictedResult, Query, predict

__all__ = [
    'ALSAlgorithm',
    'ALSAlgorithmParams',
    'ALSModel',
    'BiMap',
    'ConfigurationError',
    'ImplicitALS',
    'ImplicitALSConfig',
    'Interaction',
    'ItemScore',
    'ModelStore',
    'PredictedResult',
    'PreparedData',
    'Query',
    'ViewEvent',
    'aggregate_view_events',
    'average_precision',
    'create_sparse_matrix',
    'evaluate_model_safely',
    'evaluate_ranking',
    'load_prepared_data',
    'ndcg_at_k',
    'precision_at_k',
    'predict',
    'train_test_split_by_user'
]

"""
Trainable networks consumed by the solver.

Importing this package registers the built-in `LinearRegressionNet` under
the net type ``"LinearRegression"``.
"""

from ._batch_source import BatchSource
from ._linear_regression import LinearRegressionNet, make_linear_problem
from ._net import Net
from ._parameter import Parameter
from ._registry import (
    NetParameter,
    load_net_parameter,
    net_from_param,
    register_net,
    registered_nets,
)

__all__ = [
    BatchSource.__name__,
    LinearRegressionNet.__name__,
    make_linear_problem.__name__,
    Net.__name__,
    Parameter.__name__,
    NetParameter.__name__,
    load_net_parameter.__name__,
    net_from_param.__name__,
    register_net.__name__,
    registered_nets.__name__,
]

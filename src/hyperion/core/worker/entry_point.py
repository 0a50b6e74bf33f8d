"""
Evaluation entry points
=======================

Entry points are the functions being tuned. Slave processes receive the identifier of an
entry point as a string and resolve it with `entry_point_factory`.

An identifier is either the name of a subclass of `HyperparameterMain` (capitalization
insensitive), known because its module was imported or because it is advertised in the
``HyperparameterMain`` entry point group of an installed distribution, or
``package.module:ClassName`` in which case the module is imported first.

"""
import logging
from importlib import import_module

from hyperion.core.utils import GenericFactory
from hyperion.core.utils.exceptions import UnknownEntryPoint

log = logging.getLogger(__name__)


class HyperparameterMain:
    """Base class of the evaluation entry points.

    Subclasses implement `evaluate_parameters`, receiving the configuration of a trial as a
    list of ``--name=value`` flags and returning the objective, higher being better.

    Entry points are callable, so they can be given directly to
    `hyperion.executor.pool_backend.PoolExecutor`.

    """

    def evaluate_parameters(self, args):
        """Train and score the model configured by ``args``"""
        raise NotImplementedError

    def __call__(self, args):
        return float(self.evaluate_parameters(list(args)))


entry_point_factory = GenericFactory(HyperparameterMain)


def resolve_entry_point(identifier):
    """Instantiate the entry point named by ``identifier``

    Raises
    ------
    UnknownEntryPoint
        If no entry point matches the identifier.

    """
    module_name, sep, class_name = identifier.rpartition(":")
    if sep:
        try:
            import_module(module_name)
        except ImportError as e:
            raise UnknownEntryPoint(
                f"Cannot import module {module_name} of entry point {identifier}"
            ) from e
    else:
        class_name = identifier

    try:
        entry_point = entry_point_factory.create(class_name)
    except NotImplementedError as e:
        raise UnknownEntryPoint(str(e)) from e

    log.debug("Resolved entry point %s to %s", identifier, type(entry_point).__name__)
    return entry_point

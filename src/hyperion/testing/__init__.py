"""
Evaluation entry points for tests and demonstrations
====================================================

"""
import logging

from hyperion.core.io.cmd_options import CmdOptions
from hyperion.core.worker.entry_point import HyperparameterMain

log = logging.getLogger(__name__)


def quadratic_options():
    """Return a registry with the options of `Quadratic`"""
    cmds = CmdOptions()
    cmds.add_option("x", 0.0, help="Point at which the parabola is evaluated")
    cmds.add_option("optimum", 3.0, help="Maximum of the parabola")
    cmds.add_option("fail", False, help="Raise instead of evaluating")
    return cmds


class Quadratic(HyperparameterMain):
    """Concave parabola ``-(x - optimum) ** 2``, maximal at ``--optimum``.

    ``--fail`` makes the evaluation raise, to simulate a crashing trial.

    """

    def evaluate_parameters(self, args):
        cmds = quadratic_options()
        cmds.parse(args)

        if cmds.fail.value:
            raise RuntimeError(f"Evaluation failed for {args}")

        x = cmds.x.value
        objective = -((x - cmds.optimum.value) ** 2)
        log.info("Objective at x=%s is %s", x, objective)
        return objective


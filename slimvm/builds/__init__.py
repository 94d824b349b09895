"""Build orchestration module.

This module handles:
- The format to step catalog
- Step planning for a provider and requested formats
- Sequential step execution
- The six build steps and the post-build cleanup policy
- Final artifact reporting
"""

from slimvm.builds.catalog import FORMAT_STEPS, Step
from slimvm.builds.planner import plan_steps

__all__ = ["FORMAT_STEPS", "Step", "plan_steps"]

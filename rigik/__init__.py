"""rigik - priority-weighted Jacobian IK over an animated humanoid skeleton"""

__version__ = "0.1.0"

"""Development stub server of the consumed REST surface"""
from .app import create_app
from .state import DevState, seed_demo_state

__all__ = ["create_app", "DevState", "seed_demo_state"]

from gui.app import DualSolverApp

__all__ = ["DualSolverApp"]

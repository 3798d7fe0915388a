"""
DualSolver — Entry point.

Launch the Tkinter desktop application.
"""

import logging

from gui import DualSolverApp


def main() -> None:
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    app = DualSolverApp()
    app.mainloop()


if __name__ == "__main__":
    main()

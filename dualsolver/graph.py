"""
Graph builder for DualSolver.

Produces a themed matplotlib Figure of the Newton iteration for embedding in
the Tkinter GUI: residual norm per iteration on a log scale, with the
damping factor α on a secondary axis.
"""

import math

import numpy as np

# ── palette ────────────────────────────────────────────────────────────────
_DARK_GRAPH = dict(
    C_BG    = "#0f0f0f",
    C_AX    = "#181818",
    C_GRID  = "#252525",
    C_TICK  = "#666666",
    C_SPINE = "#333333",
    C_LINE1 = "#1a8cff",   # residual norm
    C_LINE2 = "#ff8c42",   # damping factor
    C_DOT   = "#4caf50",   # converged point
    C_FAIL  = "#ff5555",   # last point of a failed run
    C_TEXT  = "#cccccc",
)

_LIGHT_GRAPH = dict(
    C_BG    = "#ffffff",
    C_AX    = "#f7f9fc",
    C_GRID  = "#dde2ea",
    C_TICK  = "#555555",
    C_SPINE = "#c5ccd6",
    C_LINE1 = "#0F4C75",
    C_LINE2 = "#e65100",
    C_DOT   = "#2e7d32",
    C_FAIL  = "#c62828",
    C_TEXT  = "#222222",
)

C_BG    = _DARK_GRAPH["C_BG"]
C_AX    = _DARK_GRAPH["C_AX"]
C_GRID  = _DARK_GRAPH["C_GRID"]
C_TICK  = _DARK_GRAPH["C_TICK"]
C_SPINE = _DARK_GRAPH["C_SPINE"]
C_LINE1 = _DARK_GRAPH["C_LINE1"]
C_LINE2 = _DARK_GRAPH["C_LINE2"]
C_DOT   = _DARK_GRAPH["C_DOT"]
C_FAIL  = _DARK_GRAPH["C_FAIL"]
C_TEXT  = _DARK_GRAPH["C_TEXT"]


def set_theme(theme: str) -> None:
    """Switch the module colours to the ``"dark"`` or ``"light"`` palette."""
    palette = _DARK_GRAPH if theme == "dark" else _LIGHT_GRAPH
    globals().update(palette)


def _style_axes(ax, fig):
    fig.patch.set_facecolor(C_BG)
    ax.set_facecolor(C_AX)
    ax.tick_params(colors=C_TICK, labelsize=9)
    ax.xaxis.label.set_color(C_TEXT)
    ax.yaxis.label.set_color(C_TEXT)
    ax.title.set_color(C_TEXT)
    for spine in ax.spines.values():
        spine.set_edgecolor(C_SPINE)
    ax.grid(True, color=C_GRID, linewidth=0.8, linestyle="--", alpha=0.7)


def _history(result: dict):
    history = result.get("history") or []
    iterations = np.array([h["iteration"] for h in history], dtype=float)
    residuals = np.array([h["residual"] for h in history], dtype=float)
    alphas = np.array([h["alpha"] for h in history], dtype=float)
    return iterations, residuals, alphas


def analyze_result(result: dict) -> dict | None:
    """
    Summarise the convergence of a calculation result dict.
    Returns None when the run never reached the Newton iteration
    (parse or compile errors).

    Returned dict keys:
      case       : "converged" | "already_solved" | "diverged" | "numerical"
      case_label : human-readable short label
      iterations : number of Newton steps taken
      initial    : residual norm before the first step
      final      : residual norm at the end
      rate       : estimated convergence order (None when not measurable)
      graphable  : bool
    """
    if result.get("failure") in ("parse", "compile"):
        return None

    _, residuals, _ = _history(result)
    initial = float(residuals[0]) if len(residuals) else None
    final = float(residuals[-1]) if len(residuals) else None

    if result.get("failure") == "numerical":
        case, label = "numerical", "Numerical failure — singular or undefined step"
    elif result.get("failure") == "convergence":
        case, label = "diverged", "No convergence — iteration stopped"
    elif result.get("iterations", 0) == 0:
        case, label = "already_solved", "Already solved — no step needed"
    else:
        case, label = "converged", "Converged"

    return {
        "case": case,
        "case_label": label,
        "iterations": int(result.get("iterations", 0)),
        "initial": initial,
        "final": final,
        "rate": _convergence_order(residuals),
        "graphable": len(residuals) > 1,
    }


def _convergence_order(residuals) -> float | None:
    """Estimate q from e[k+1] ≈ C·e[k]^q using the last three positive errors."""
    errors = [e for e in residuals if e > 0]
    if len(errors) < 3:
        return None
    e0, e1, e2 = errors[-3:]
    try:
        q = math.log(e2 / e1) / math.log(e1 / e0)
    except (ValueError, ZeroDivisionError):
        return None
    return q if math.isfinite(q) else None


def build_figure(result: dict):
    """
    Build and return a themed matplotlib Figure for *result*.
    Returns None if there is no iteration history to show.
    """
    from matplotlib.figure import Figure

    iterations, residuals, alphas = _history(result)
    if len(residuals) == 0:
        return None

    fig = Figure(figsize=(7, 3.4), dpi=100)
    ax = fig.add_subplot(111)
    _style_axes(ax, fig)

    # log scale cannot show an exact zero
    floor = np.finfo(float).tiny
    shown = np.maximum(residuals, floor)
    ax.semilogy(iterations, shown, color=C_LINE1, linewidth=2, marker="o",
                markersize=4, label="‖residual‖")

    ok = result.get("ok", False)
    ax.scatter([iterations[-1]], [shown[-1]], color=C_DOT if ok else C_FAIL,
               s=70, zorder=5)

    ax2 = ax.twinx()
    ax2.step(iterations, alphas, where="post", color=C_LINE2, linewidth=1.2,
             linestyle="--", label="α")
    ax2.set_ylim(0, 1.05)
    ax2.tick_params(colors=C_TICK, labelsize=9)
    ax2.yaxis.label.set_color(C_TEXT)
    ax2.set_ylabel("α", color=C_TEXT)

    if ok:
        title = f"Converged after {result.get('iterations', 0)} iteration(s)"
    else:
        title = "No solution found"
    ax.set_title(title, color=C_TEXT, fontsize=10)
    ax.set_xlabel("iteration", color=C_TEXT)
    ax.set_ylabel("residual norm", color=C_TEXT)

    lines = ax.get_lines() + ax2.get_lines()
    ax.legend(lines, [l.get_label() for l in lines], fontsize=8,
              facecolor=C_AX, edgecolor=C_SPINE, labelcolor=C_TEXT)
    fig.tight_layout(pad=1.2)
    return fig

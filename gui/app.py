"""
DualSolver — Tkinter GUI

Source editor on the right, the externally defined variables on the left and
a Calculate button that solves the system and writes the solution back into
both.  The project is saved automatically.
"""

import logging
import re
import tkinter as tk
from tkinter import ttk, font as tkfont, filedialog, messagebox

from dualsolver import SI_PREFIXES, calculate
from dualsolver.engine import CalculationResult, check_source
from dualsolver.formatting import format_number
from dualsolver.graph import build_figure, set_theme as set_graph_theme
from dualsolver.project import VariableDefinition

from gui import export, storage, themes

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(r"\b(lvar|var|eq|fun)\b")
_COMMENT_RE = re.compile(r"//[^\n]*")
_SAVE_DELAY_MS = 500


class DualSolverApp(tk.Tk):
    """Main application window."""

    def __init__(self) -> None:
        super().__init__()
        self.title("DualSolver — Equation System Solver")
        self.geometry("1100x760")
        self.minsize(760, 520)

        self._default = tkfont.Font(family="Segoe UI", size=12)
        self._bold    = tkfont.Font(family="Segoe UI", size=12, weight="bold")
        self._title   = tkfont.Font(family="Segoe UI", size=18, weight="bold")
        self._mono    = tkfont.Font(family="Consolas", size=13)

        self._settings = storage.get_settings()
        self._theme: str = self._settings["theme"]
        themes.apply_theme(self._theme)
        set_graph_theme(self._theme)

        self._project = storage.load_project()
        self._save_job = None
        self._graph_canvas = None
        self._last_result = None

        self._build_ui()
        self._load_source()
        self._refresh_variables()

        self.bind("<Control-Return>", lambda _: self._on_calculate())
        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # ── UI construction ─────────────────────────────────────────────────

    def _build_ui(self) -> None:
        self.configure(bg=themes.BG)

        header = tk.Frame(self, bg=themes.HEADER_BG, height=56)
        header.pack(fill=tk.X)
        header.pack_propagate(False)
        tk.Label(header, text="DualSolver", font=self._title,
                 bg=themes.HEADER_BG, fg=themes.TEXT_BRIGHT).pack(
                     side=tk.LEFT, padx=16)

        for text, command in (("Calculate ➤", self._on_calculate),
                              ("Save PDF", self._on_save_pdf),
                              ("Copy report", self._on_copy_report),
                              ("Export", self._on_export),
                              ("Import", self._on_import),
                              ("☀ / ☾", self._toggle_theme)):
            tk.Button(header, text=text, font=self._bold, bg=themes.ACCENT,
                      fg=themes.TEXT_BRIGHT, activebackground=themes.ACCENT_HOVER,
                      bd=0, padx=14, pady=4, cursor="hand2",
                      command=command).pack(side=tk.RIGHT, padx=(0, 10))

        body = tk.PanedWindow(self, orient=tk.HORIZONTAL, bg=themes.BG,
                              sashwidth=4)
        body.pack(fill=tk.BOTH, expand=True)

        body.add(self._build_variable_panel(body), minsize=320)
        body.add(self._build_editor_panel(body), minsize=360)

    def _build_variable_panel(self, parent) -> tk.Frame:
        panel = tk.Frame(parent, bg=themes.PANEL_BG, padx=8, pady=8)

        columns = ("name", "value", "unit", "locked")
        self._tree = ttk.Treeview(panel, columns=columns, show="headings",
                                  height=14)
        for col, width in zip(columns, (90, 130, 70, 60)):
            self._tree.heading(col, text=col.title())
            self._tree.column(col, width=width, anchor="w")
        self._tree.pack(fill=tk.BOTH, expand=True)
        self._tree.tag_configure("locked", foreground=themes.LOCKED)
        self._tree.bind("<<TreeviewSelect>>", self._on_select_variable)

        form = tk.Frame(panel, bg=themes.PANEL_BG, pady=6)
        form.pack(fill=tk.X)

        self._name_var = tk.StringVar()
        self._value_var = tk.StringVar(value="0")
        self._prefix_var = tk.StringVar(value="")
        self._unit_var = tk.StringVar()
        self._locked_var = tk.BooleanVar(value=False)

        for row, (label, widget) in enumerate((
            ("Name", tk.Entry(form, textvariable=self._name_var)),
            ("Value", tk.Entry(form, textvariable=self._value_var)),
            ("Prefix", ttk.Combobox(form, textvariable=self._prefix_var,
                                    values=[p.symbol for p in SI_PREFIXES],
                                    width=4, state="readonly")),
            ("Unit", tk.Entry(form, textvariable=self._unit_var)),
        )):
            tk.Label(form, text=label, bg=themes.PANEL_BG, fg=themes.TEXT,
                     font=self._default).grid(row=row, column=0, sticky="w")
            widget.grid(row=row, column=1, sticky="ew", pady=2)
        tk.Checkbutton(form, text="Locked", variable=self._locked_var,
                       bg=themes.PANEL_BG, fg=themes.TEXT,
                       selectcolor=themes.BG).grid(row=4, column=1, sticky="w")
        form.columnconfigure(1, weight=1)

        buttons = tk.Frame(panel, bg=themes.PANEL_BG)
        buttons.pack(fill=tk.X)
        for text, command in (("Add", self._on_add_variable),
                              ("Update", self._on_update_variable),
                              ("Remove", self._on_remove_variable)):
            tk.Button(buttons, text=text, command=command, bd=0, padx=10,
                      bg=themes.BORDER, fg=themes.TEXT_BRIGHT).pack(
                          side=tk.LEFT, padx=(0, 6))
        return panel

    def _build_editor_panel(self, parent) -> tk.Frame:
        panel = tk.Frame(parent, bg=themes.BG, padx=8, pady=8)

        self._editor = tk.Text(panel, font=self._mono, bg=themes.EDITOR_BG,
                               fg=themes.EDITOR_FG, insertbackground=themes.EDITOR_FG,
                               undo=True, wrap=tk.NONE, bd=0, padx=8, pady=8)
        self._editor.pack(fill=tk.BOTH, expand=True)
        self._editor.tag_configure("keyword", foreground=themes.KEYWORD)
        self._editor.tag_configure("comment", foreground=themes.COMMENT)
        self._editor.tag_configure("error", underline=True,
                                   foreground=themes.ERROR)
        self._editor.bind("<<Modified>>", self._on_source_modified)

        self._status = tk.Label(panel, text="", anchor="w", justify=tk.LEFT,
                                font=self._mono, bg=themes.BG, fg=themes.TEXT)
        self._status.pack(fill=tk.X, pady=(6, 0))

        self._graph_frame = tk.Frame(panel, bg=themes.BG)
        self._graph_frame.pack(fill=tk.X)
        return panel

    # ── Helpers (pure, unit-tested) ─────────────────────────────────────

    @staticmethod
    def _parse_value_entry(text: str) -> complex:
        """``"1.5"`` or ``"1.5:-2"`` (real:imag) → complex."""
        parts = text.strip().split(":")
        if len(parts) > 2 or not parts[0]:
            raise ValueError(f"Not a number: '{text}'")
        real = float(parts[0])
        imag = float(parts[1]) if len(parts) == 2 else 0.0
        return complex(real, imag)

    @staticmethod
    def _format_value(variable: VariableDefinition, precision: int = 6) -> str:
        shown = variable.display_value()
        text = format_number(shown.real, precision)
        if shown.imag:
            text += ":" + format_number(shown.imag, precision)
        return f"{text} {variable.si_prefix}".rstrip()

    @staticmethod
    def _friendly_error(result: CalculationResult) -> str:
        """Turn a failed result into the status-line text."""
        if result.failure in ("parse", "compile"):
            shown = [e.message for e in result.errors[:3]]
            more = len(result.errors) - len(shown)
            if more > 0:
                shown.append(f"... and {more} more error(s)")
            return "\n".join(shown)
        if result.failure == "convergence":
            return f"{result.message}\nTry other start values for the unknowns."
        if result.failure == "numerical":
            return f"The solver could not continue: {result.message}"
        return result.message

    # ── Source editor ───────────────────────────────────────────────────

    def _load_source(self) -> None:
        self._editor.delete("1.0", tk.END)
        self._editor.insert("1.0", self._project.source_code)
        self._editor.edit_modified(False)
        self._highlight()

    def _source(self) -> str:
        return self._editor.get("1.0", "end-1c")

    def _highlight(self) -> None:
        text = self._source()
        for tag in ("keyword", "comment"):
            self._editor.tag_remove(tag, "1.0", tk.END)
        for regex, tag in ((_KEYWORD_RE, "keyword"), (_COMMENT_RE, "comment")):
            for m in regex.finditer(text):
                self._editor.tag_add(tag, f"1.0+{m.start()}c", f"1.0+{m.end()}c")

    def _on_source_modified(self, _=None) -> None:
        if not self._editor.edit_modified():
            return
        self._editor.edit_modified(False)
        self._project.source_code = self._source()
        self._highlight()
        self._mark_errors(check_source(self._project.source_code))
        self._schedule_save()

    def _mark_errors(self, errors) -> None:
        self._editor.tag_remove("error", "1.0", tk.END)
        for e in errors:
            start = f"1.0+{e.position.offset}c"
            self._editor.tag_add("error", start, f"{start}+1c")

    # ── Variables ───────────────────────────────────────────────────────

    def _refresh_variables(self) -> None:
        precision = int(self._settings.get("display_precision", 6))
        self._tree.delete(*self._tree.get_children())
        for variable in self._project.all_variables():
            self._tree.insert("", tk.END, iid=str(variable.id), values=(
                variable.name,
                self._format_value(variable, precision),
                variable.unit,
                "🔒" if variable.locked else "",
            ), tags=("locked",) if variable.locked else ())

    def _selected_id(self):
        selection = self._tree.selection()
        return int(selection[0]) if selection else None

    def _on_select_variable(self, _=None) -> None:
        variable = self._project.get_variable(self._selected_id() or -1)
        if variable is None:
            return
        shown = variable.display_value()
        self._name_var.set(variable.name)
        self._value_var.set(f"{shown.real:g}" + (f":{shown.imag:g}" if shown.imag else ""))
        self._prefix_var.set(variable.si_prefix)
        self._unit_var.set(variable.unit)
        self._locked_var.set(variable.locked)

    def _form_fields(self) -> dict:
        name = self._name_var.get().strip()
        if not re.fullmatch(r"[a-zA-Z_][a-zA-Z0-9_]*", name):
            raise ValueError(f"'{name}' is not a valid variable name.")
        prefix = self._prefix_var.get()
        factor = dict(SI_PREFIXES).get(prefix, 1.0)
        value = self._parse_value_entry(self._value_var.get()) * factor
        return dict(name=name, value=value.real, imag=value.imag,
                    si_prefix=prefix, unit=self._unit_var.get().strip(),
                    locked=self._locked_var.get())

    def _on_add_variable(self) -> None:
        try:
            fields = self._form_fields()
        except ValueError as e:
            messagebox.showerror("DualSolver", str(e))
            return
        name = fields.pop("name")
        self._project.add_variable(name, group=0, **fields)
        self._refresh_variables()
        self._schedule_save()

    def _on_update_variable(self) -> None:
        variable_id = self._selected_id()
        if variable_id is None:
            return
        try:
            fields = self._form_fields()
        except ValueError as e:
            messagebox.showerror("DualSolver", str(e))
            return
        self._project.update_variable(variable_id, **fields)
        self._refresh_variables()
        self._schedule_save()

    def _on_remove_variable(self) -> None:
        variable_id = self._selected_id()
        if variable_id is None:
            return
        self._project.remove_variable(variable_id)
        self._refresh_variables()
        self._schedule_save()

    # ── Calculation ─────────────────────────────────────────────────────

    def _on_calculate(self) -> None:
        self._project.source_code = self._source()
        result = calculate(self._project.source_code,
                           self._project.all_variables())
        storage.add_history(self._project.source_code, result.ok, result.message)
        self._last_result = result.to_dict()

        if result.ok:
            self._project.apply_result(result.source_code, result.variables)
            self._load_source()
            self._refresh_variables()
            self._mark_errors([])
            self._status.configure(
                text=f"✓ {result.message} ({result.iterations} iteration(s), "
                     f"{result.summary['runtime_ms']} ms)",
                fg=themes.SUCCESS)
        else:
            self._mark_errors(result.errors)
            self._status.configure(text=self._friendly_error(result),
                                   fg=themes.ERROR)
        self._show_graph(result)
        self._schedule_save()

    def _show_graph(self, result: CalculationResult) -> None:
        if self._graph_canvas is not None:
            self._graph_canvas.get_tk_widget().destroy()
            self._graph_canvas = None
        if not self._settings.get("show_graph", True):
            return
        fig = build_figure(result.to_dict())
        if fig is None:
            return
        from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
        self._graph_canvas = FigureCanvasTkAgg(fig, master=self._graph_frame)
        self._graph_canvas.draw()
        self._graph_canvas.get_tk_widget().pack(fill=tk.X, pady=(6, 0))

    # ── Persistence ─────────────────────────────────────────────────────

    def _schedule_save(self) -> None:
        if self._save_job is not None:
            self.after_cancel(self._save_job)
        self._save_job = self.after(_SAVE_DELAY_MS, self._save_now)

    def _save_now(self) -> None:
        self._save_job = None
        storage.save_project(self._project)

    def _on_copy_report(self) -> None:
        if self._last_result is None:
            return
        precision = int(self._settings.get("display_precision", 6))
        self.clipboard_clear()
        self.clipboard_append(export.build_plain_text(self._last_result, precision))

    def _on_save_pdf(self) -> None:
        if self._last_result is None:
            messagebox.showinfo("DualSolver", "Calculate first to create a report.")
            return
        path = filedialog.asksaveasfilename(
            title="Save Report as PDF",
            defaultextension=".pdf",
            initialfile=f"DualSolver_{export.safe_filename(self._source()[:40])}",
            filetypes=[("PDF files", "*.pdf"), ("All files", "*.*")],
        )
        if not path:
            return
        precision = int(self._settings.get("display_precision", 6))
        try:
            export.write_pdf(self._last_result, path, precision)
        except OSError as e:
            messagebox.showerror("Export error", f"Could not save PDF:\n{e}")

    def _on_export(self) -> None:
        path = filedialog.asksaveasfilename(defaultextension=".json",
                                            filetypes=[("Project", "*.json")])
        if path:
            storage.export_project(self._project, path)

    def _on_import(self) -> None:
        path = filedialog.askopenfilename(filetypes=[("Project", "*.json")])
        if not path:
            return
        try:
            self._project = storage.import_project(path)
        except (OSError, ValueError) as e:
            logger.warning("project import from %s failed: %s", path, e)
            messagebox.showerror("DualSolver", f"Could not import project.\n\n{e}")
            return
        self._load_source()
        self._refresh_variables()
        self._schedule_save()

    def _toggle_theme(self) -> None:
        self._theme = "light" if self._theme == "dark" else "dark"
        self._settings["theme"] = self._theme
        storage.save_settings(self._settings)
        themes.apply_theme(self._theme)
        set_graph_theme(self._theme)
        for child in self.winfo_children():
            child.destroy()
        self._graph_canvas = None
        self._build_ui()
        self._load_source()
        self._refresh_variables()

    def _on_close(self) -> None:
        if self._save_job is not None:
            self.after_cancel(self._save_job)
        self._project.source_code = self._source()
        storage.save_project(self._project)
        self.destroy()

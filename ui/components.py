"""스캔 스테이션 화면을 구성하는 컴포넌트들"""

import tkinter as tk
from tkinter import ttk
from typing import List, Dict, Optional, Callable, Sequence, Tuple

from core.models import FIELD_SLOT_COUNT, StageConfig, StatusLabels
from core.reporting import StageStats
from .base_ui import BaseUIComponent, UIUtils, StyleManager


class ScannerInputComponent(BaseUIComponent):
    """제품 코드 스캐너 입력을 처리하는 컴포넌트"""

    def __init__(self, parent: tk.Widget, font: tuple):
        super().__init__(parent)
        self.font = font
        self.entry: Optional[tk.Entry] = None
        self.status_label: Optional[ttk.Label] = None

    def create_widgets(self):
        """스캐너 입력 관련 위젯들을 생성합니다."""
        self.frame = ttk.Frame(self.parent)

        input_frame = ttk.Frame(self.frame)
        input_frame.pack(fill="x", padx=5, pady=5)

        ttk.Label(input_frame, text="제품 코드 스캔:", style='Header.TLabel').pack(side="left")
        self.entry = tk.Entry(input_frame, font=self.font, relief=tk.SOLID, bd=2,
                              highlightthickness=2, highlightcolor=StyleManager.COLOR_PRIMARY,
                              disabledbackground="#E9ECEF")
        self.entry.pack(side="left", fill="x", expand=True, padx=(10, 0), ipady=6)

        self.status_label = ttk.Label(self.frame, text="스캔 대기 중...", style='Status.Good.TLabel')
        self.status_label.pack(pady=2)

    def setup_layout(self):
        """레이아웃을 설정합니다."""
        self.frame.pack(fill="x", padx=10, pady=5)

    def bind_scan_event(self, callback: Callable[[str], None]):
        """Enter 입력 시 현재 코드를 넘기고 입력칸을 비웁니다."""
        def on_scan(event):
            code = self.entry.get()
            self.entry.delete(0, 'end')
            callback(code)
            return 'break'

        self.entry.bind('<Return>', on_scan)

    def set_enabled(self, enabled: bool):
        if self.entry:
            self.entry.config(state=tk.NORMAL if enabled else tk.DISABLED)

    def set_status(self, message: str, status_type: str = "normal"):
        """상태 메시지를 설정합니다."""
        if self.status_label:
            self.status_label.config(text=message)
            if status_type == "error":
                self.status_label.config(style='Status.Error.TLabel')
            elif status_type == "warning":
                self.status_label.config(style='Status.Warning.TLabel')
            else:
                self.status_label.config(style='Status.Good.TLabel')

    def focus_input(self):
        if self.entry and str(self.entry['state']) != tk.DISABLED:
            self.entry.focus_set()


class StageTabsComponent(BaseUIComponent):
    """공정 선택 탭. 'stage_selected' 콜백에 공정 ID를 넘깁니다."""

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.buttons: Dict[int, ttk.Button] = {}

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent)

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=(10, 5))

    def set_stages(self, stages: Sequence[StageConfig], active_id: int):
        UIUtils.clear_widget_children(self.frame)
        self.buttons = {}
        for stage in stages:
            btn = ttk.Button(self.frame, text=stage.display_name,
                             command=lambda sid=stage.id: self.trigger_callback('stage_selected', sid))
            btn.pack(side="left", padx=(0, 6))
            self.buttons[stage.id] = btn
        self.set_active(active_id)

    def set_active(self, active_id: int):
        for stage_id, btn in self.buttons.items():
            btn.config(style='ActiveStage.TButton' if stage_id == active_id else 'Stage.TButton')


class ModelSelectorComponent(BaseUIComponent):
    """모델 선택 칩과 모델 추가 입력"""

    def __init__(self, parent: tk.Widget, font: tuple):
        super().__init__(parent)
        self.font = font
        self.model_var = tk.StringVar(value="")
        self.chips_frame: Optional[ttk.Frame] = None
        self.new_model_entry: Optional[tk.Entry] = None

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent, style='Card.TFrame', padding=10)
        ttk.Label(self.frame, text="모델 선택", style='Subtle.TLabel').pack(anchor="w")
        self.chips_frame = ttk.Frame(self.frame, style='Sidebar.TFrame')
        self.chips_frame.pack(fill="x", pady=(4, 6))

        add_frame = ttk.Frame(self.frame, style='Sidebar.TFrame')
        add_frame.pack(fill="x")
        self.new_model_entry = tk.Entry(add_frame, font=self.font, relief=tk.SOLID, bd=1, width=14)
        self.new_model_entry.pack(side="left", fill="x", expand=True, ipady=2)
        self.new_model_entry.bind('<Return>', lambda e: self._on_add())
        ttk.Button(add_frame, text="추가", style='Secondary.TButton', command=self._on_add).pack(side="left", padx=(5, 0))

    def setup_layout(self):
        self.frame.pack(fill="x", pady=(0, 10))

    def _on_add(self):
        name = self.new_model_entry.get().strip()
        if name:
            self.new_model_entry.delete(0, tk.END)
            self.trigger_callback('model_added', name)

    def set_models(self, models: Sequence[str], selected: str):
        UIUtils.clear_widget_children(self.chips_frame)
        self.model_var.set(selected)
        for model in models:
            ttk.Radiobutton(self.chips_frame, text=model, value=model, variable=self.model_var,
                            style='Model.TRadiobutton',
                            command=lambda m=model: self.trigger_callback('model_selected', m)).pack(anchor="w")


class StageInputsComponent(BaseUIComponent):
    """현재 공정의 작업자, 측정값, 보조 필드 입력칸"""

    def __init__(self, parent: tk.Widget, font: tuple):
        super().__init__(parent)
        self.font = font
        self.stage: Optional[StageConfig] = None
        self.employee_entry: Optional[tk.Entry] = None
        self.measurement_entry: Optional[tk.Entry] = None
        self.field_entries: Dict[int, tk.Entry] = {}
        self.body: Optional[ttk.Frame] = None

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent, style='Card.TFrame', padding=10)
        self.body = ttk.Frame(self.frame, style='Sidebar.TFrame')
        self.body.pack(fill="x")
        self.body.grid_columnconfigure(1, weight=1)

    def setup_layout(self):
        self.frame.pack(fill="x", pady=(0, 10))

    def rebuild(self, stage: StageConfig, employee_id: str):
        """공정이 바뀌면 입력칸을 다시 만들고 기본값을 채웁니다."""
        self.stage = stage
        UIUtils.clear_widget_children(self.body)
        self.field_entries = {}
        self.measurement_entry = None

        _, self.employee_entry = UIUtils.create_labeled_entry(self.body, "작업자 ID", self.font, row=0)
        UIUtils.set_entry_text(self.employee_entry, employee_id)
        self.employee_entry.bind('<FocusOut>', lambda e: self.trigger_callback('employee_changed', self.employee_entry.get()))

        row = 1
        if stage.measurement.enabled:
            label = stage.measurement.label or "측정값"
            if stage.measurement.standard:
                label = f"{label} (기준: {stage.measurement.standard})"
            _, self.measurement_entry = UIUtils.create_labeled_entry(self.body, label, self.font, row=row)
            row += 1

        for idx, slot in stage.active_fields():
            _, entry = UIUtils.create_labeled_entry(self.body, slot.label, self.font, row=row)
            UIUtils.set_entry_text(entry, slot.default)
            ttk.Button(self.body, text="목록", style='Secondary.TButton', width=5,
                       command=lambda i=idx: self.trigger_callback('whitelist_import', stage.id, i)
                       ).grid(row=row, column=2, padx=(0, 5))
            self.field_entries[idx] = entry
            row += 1

    def input_order(self) -> List[tk.Entry]:
        """Enter 이동 순서: 작업자 → 측정값 → 활성 필드"""
        order = [self.employee_entry, self.measurement_entry]
        order.extend(self.field_entries[idx] for idx in sorted(self.field_entries))
        return [entry for entry in order if entry is not None]

    def get_employee(self) -> str:
        return self.employee_entry.get().strip() if self.employee_entry else ""

    def get_measurement(self) -> str:
        return self.measurement_entry.get() if self.measurement_entry else ""

    def get_aux_values(self) -> List[str]:
        """8칸 보조 값. 비활성 칸은 설정된 기본값을 그대로 씁니다."""
        values = list(self.stage.default_values()) if self.stage else [""] * FIELD_SLOT_COUNT
        for idx, entry in self.field_entries.items():
            values[idx] = entry.get()
        return values

    def reset_values(self):
        """정상 처리 후 측정값을 비우고 보조 필드를 기본값으로 되돌립니다."""
        if self.measurement_entry:
            self.measurement_entry.delete(0, tk.END)
        if self.stage:
            for idx, entry in self.field_entries.items():
                UIUtils.set_entry_text(entry, self.stage.fields[idx].default)

    def first_pending_input(self, employee_bound: bool) -> Optional[tk.Entry]:
        """다음에 입력해야 할 칸. 모두 채워졌으면 None"""
        if not employee_bound:
            return self.employee_entry
        if self.measurement_entry is not None and not self.measurement_entry.get().strip():
            return self.measurement_entry
        if self.measurement_entry is None and self.field_entries:
            return self.field_entries[min(self.field_entries)]
        return None


class StatsDisplayComponent(BaseUIComponent):
    """현재 공정의 정상/불량/오류/대기 수량 카드"""

    KEYS = ('valid', 'defect', 'error', 'pending')

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.cards: Dict[str, Dict[str, ttk.Label]] = {}

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent)
        colors = {'valid': StyleManager.COLOR_SUCCESS, 'defect': StyleManager.COLOR_DEFECT,
                  'error': StyleManager.COLOR_ERROR, 'pending': StyleManager.COLOR_PRIMARY}
        for col, key in enumerate(self.KEYS):
            card = ttk.Frame(self.frame, style='Card.TFrame', padding=12)
            card.grid(row=0, column=col, sticky='ew', padx=4)
            self.frame.grid_columnconfigure(col, weight=1)
            label = ttk.Label(card, text="-", style='Subtle.TLabel')
            label.pack()
            value = ttk.Label(card, text="0", style='Value.TLabel', foreground=colors[key])
            value.pack()
            self.cards[key] = {'frame': card, 'label': label, 'value': value}

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=5)

    def update_stats(self, stats: StageStats, labels: StatusLabels, pending: Optional[int]):
        """pending 이 None 이면 대기 카드를 숨깁니다(첫 공정)."""
        texts = {'valid': labels.valid, 'defect': labels.defect, 'error': labels.error, 'pending': "이전 공정 대기"}
        numbers = {'valid': stats.valid, 'defect': stats.defect, 'error': stats.error, 'pending': pending or 0}
        for key in self.KEYS:
            self.cards[key]['label']['text'] = texts[key]
            self.cards[key]['value']['text'] = str(numbers[key])
        if pending is None:
            self.cards['pending']['frame'].grid_remove()
        else:
            self.cards['pending']['frame'].grid()


class HistoryTableComponent(BaseUIComponent):
    """스캔 이력 테이블 (최신순)"""

    def __init__(self, parent: tk.Widget, title: str, columns: List[str]):
        super().__init__(parent)
        self.title = title
        self.columns = columns
        self.treeview: Optional[ttk.Treeview] = None
        self.scrollbar: Optional[ttk.Scrollbar] = None

    def create_widgets(self):
        self.frame = ttk.LabelFrame(self.parent, text=self.title, padding=5)

        tree_frame = ttk.Frame(self.frame)
        tree_frame.pack(fill="both", expand=True)

        self.treeview = ttk.Treeview(tree_frame, columns=self.columns, show="headings")
        self.scrollbar = ttk.Scrollbar(tree_frame, orient="vertical", command=self.treeview.yview)
        self.treeview.configure(yscrollcommand=self.scrollbar.set)

        for col in self.columns:
            self.treeview.heading(col, text=col)
            self.treeview.column(col, width=100, anchor='center')

        self.treeview.tag_configure('valid', foreground=StyleManager.COLOR_SUCCESS)
        self.treeview.tag_configure('defect', foreground=StyleManager.COLOR_DEFECT, background='#FADBD8')
        self.treeview.tag_configure('error', foreground=StyleManager.COLOR_ERROR)

        self.treeview.pack(side="left", fill="both", expand=True)
        self.scrollbar.pack(side="right", fill="y")

    def setup_layout(self):
        self.frame.pack(fill="both", expand=True, padx=10, pady=5)

    def set_rows(self, rows: Sequence[Tuple[Sequence[object], str]]):
        """(값 목록, 상태 태그) 묶음으로 테이블을 다시 채웁니다."""
        self.treeview.delete(*self.treeview.get_children())
        for values, tag in rows:
            self.treeview.insert("", "end", values=list(values), tags=(tag,))

    def set_column_width(self, column: str, width: int):
        if self.treeview:
            self.treeview.column(column, width=width)

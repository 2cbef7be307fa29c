"""기본 UI 컴포넌트와 유틸리티 클래스"""

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Optional, Callable, Dict, List, Sequence
from abc import ABC, abstractmethod


class BaseUIComponent(ABC):
    """UI 컴포넌트의 기본 클래스"""

    def __init__(self, parent: tk.Widget):
        self.parent = parent
        self.frame = None
        self.callbacks: Dict[str, Callable] = {}

    @abstractmethod
    def create_widgets(self):
        """위젯들을 생성합니다."""
        pass

    @abstractmethod
    def setup_layout(self):
        """레이아웃을 설정합니다."""
        pass

    def build(self):
        self.create_widgets()
        self.setup_layout()
        return self

    def set_callback(self, event_name: str, callback: Callable):
        """콜백 함수를 설정합니다."""
        self.callbacks[event_name] = callback

    def trigger_callback(self, event_name: str, *args, **kwargs):
        """콜백 함수를 실행합니다."""
        if event_name in self.callbacks:
            return self.callbacks[event_name](*args, **kwargs)


class UIUtils:
    """UI 관련 유틸리티 함수들"""

    @staticmethod
    def create_labeled_entry(parent: tk.Widget, label_text: str, font: tuple,
                             width: int = 20, row: int = 0, column: int = 0) -> tuple:
        """라벨과 엔트리를 한 행에 생성합니다."""
        label = ttk.Label(parent, text=label_text, style='Sidebar.TLabel')
        label.grid(row=row, column=column, sticky="w", padx=(5, 2), pady=2)

        entry = tk.Entry(parent, width=width, font=font, relief=tk.SOLID, bd=1)
        entry.grid(row=row, column=column + 1, sticky="ew", padx=(2, 5), pady=2, ipady=3)

        return label, entry

    @staticmethod
    def set_entry_text(entry: tk.Entry, text: str):
        entry.delete(0, tk.END)
        if text:
            entry.insert(0, text)

    @staticmethod
    def chain_focus(entries: Sequence[tk.Widget], on_last: Optional[Callable] = None):
        """Enter 키를 누르면 다음 입력칸으로 포커스를 넘깁니다. 마지막 칸에서는 on_last를 호출합니다."""
        items: List[tk.Widget] = [e for e in entries if e is not None]
        for idx, entry in enumerate(items):
            if idx + 1 < len(items):
                nxt = items[idx + 1]
                entry.bind('<Return>', lambda e, w=nxt: (w.focus_set(), 'break')[1])
            elif on_last:
                entry.bind('<Return>', lambda e: on_last())

    @staticmethod
    def show_error_message(title: str, message: str, parent: Optional[tk.Widget] = None):
        """에러 메시지를 표시합니다."""
        messagebox.showerror(title, message, parent=parent)

    @staticmethod
    def show_info_message(title: str, message: str, parent: Optional[tk.Widget] = None):
        """정보 메시지를 표시합니다."""
        messagebox.showinfo(title, message, parent=parent)

    @staticmethod
    def ask_yes_no(title: str, message: str, parent: Optional[tk.Widget] = None) -> bool:
        """예/아니오 확인 대화상자를 표시합니다."""
        return messagebox.askyesno(title, message, parent=parent)

    @staticmethod
    def clear_widget_children(widget: tk.Widget):
        """위젯의 모든 자식 위젯을 제거합니다."""
        for child in widget.winfo_children():
            child.destroy()


class StyleManager:
    """스테이션 화면의 ttk 스타일을 관리하는 클래스"""

    COLOR_BG = "#F5F7FA"
    COLOR_SIDEBAR_BG = "#FFFFFF"
    COLOR_TEXT = "#343A40"
    COLOR_TEXT_SUBTLE = "#6C757D"
    COLOR_PRIMARY = "#0D6EFD"
    COLOR_SUCCESS = "#28A745"
    COLOR_DEFECT = "#DC3545"
    COLOR_ERROR = "#F39C12"
    COLOR_BORDER = "#CED4DA"

    def __init__(self, font_family: str = 'Malgun Gothic', scale_factor: float = 1.0):
        self.style = ttk.Style()
        self.font_family = font_family
        self.scale_factor = scale_factor

    def font(self, size: int, weight: str = 'normal') -> tuple:
        return (self.font_family, int(size * self.scale_factor), weight)

    def setup_default_styles(self):
        """기본 스타일들을 설정합니다."""
        try:
            self.style.theme_use('clam')
        except tk.TclError:
            pass
        self.style.configure('TFrame', background=self.COLOR_BG)
        self.style.configure('Sidebar.TFrame', background=self.COLOR_SIDEBAR_BG)
        self.style.configure('Card.TFrame', background=self.COLOR_SIDEBAR_BG, relief='solid', borderwidth=1)
        self.style.configure('TLabel', background=self.COLOR_BG, foreground=self.COLOR_TEXT, font=self.font(12))
        self.style.configure('Sidebar.TLabel', background=self.COLOR_SIDEBAR_BG, foreground=self.COLOR_TEXT, font=self.font(12))
        self.style.configure('Subtle.TLabel', background=self.COLOR_SIDEBAR_BG, foreground=self.COLOR_TEXT_SUBTLE, font=self.font(10))
        self.style.configure('Header.TLabel', background=self.COLOR_BG, foreground=self.COLOR_TEXT, font=self.font(16, 'bold'))
        self.style.configure('Value.TLabel', background=self.COLOR_SIDEBAR_BG, foreground=self.COLOR_TEXT, font=self.font(22, 'bold'))

        # 스캔 상태 표시
        self.style.configure('Status.Good.TLabel', background=self.COLOR_BG, foreground=self.COLOR_SUCCESS, font=self.font(12, 'bold'))
        self.style.configure('Status.Error.TLabel', background=self.COLOR_BG, foreground=self.COLOR_DEFECT, font=self.font(12, 'bold'))
        self.style.configure('Status.Warning.TLabel', background=self.COLOR_BG, foreground=self.COLOR_ERROR, font=self.font(12, 'bold'))

        self.style.configure('TButton', font=self.font(11, 'bold'), padding=(int(12 * self.scale_factor), int(6 * self.scale_factor)), borderwidth=0)
        self.style.map('TButton', background=[('!active', self.COLOR_PRIMARY), ('active', '#0B5ED7')], foreground=[('!active', 'white')])
        self.style.configure('Secondary.TButton', font=self.font(10, 'bold'), borderwidth=0)
        self.style.map('Secondary.TButton', background=[('!active', self.COLOR_TEXT_SUBTLE), ('active', self.COLOR_TEXT)], foreground=[('!active', 'white')])
        self.style.configure('Danger.TButton', font=self.font(10, 'bold'), borderwidth=0)
        self.style.map('Danger.TButton', background=[('!active', self.COLOR_DEFECT), ('active', '#B02A37')], foreground=[('!active', 'white')])

        # 공정 탭 / 모델 선택
        self.style.configure('Stage.TButton', font=self.font(11, 'bold'))
        self.style.map('Stage.TButton', background=[('!active', self.COLOR_BORDER), ('active', self.COLOR_TEXT_SUBTLE)], foreground=[('!active', self.COLOR_TEXT)])
        self.style.configure('ActiveStage.TButton', font=self.font(11, 'bold'))
        self.style.map('ActiveStage.TButton', background=[('!active', self.COLOR_PRIMARY), ('active', '#0B5ED7')], foreground=[('!active', 'white')])
        self.style.configure('Model.TRadiobutton', background=self.COLOR_SIDEBAR_BG, foreground=self.COLOR_TEXT, font=self.font(11))

        self.style.configure('Treeview.Heading', font=self.font(11, 'bold'))
        self.style.configure('Treeview', rowheight=int(25 * self.scale_factor), font=self.font(11))

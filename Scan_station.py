import tkinter as tk
from tkinter import ttk, messagebox, filedialog
import dataclasses
import datetime
import os
import time
from typing import Dict, Optional, Any

from core.models import ScanStatus, StageConfig
from core.outcome import Outcome
from core.reporting import format_timestamp, pending_count, stage_stats
from core.session import ScanSession
from utils.config_manager import ConfigManager
from utils.exceptions import FileHandlingError, SessionError, StorageError
from utils.file_handler import ensure_directory_exists
from utils.logger import EventLogger
from utils.sound import SoundPlayer
from utils.spreadsheet import build_export_filename, export_csv, export_workbook, load_whitelist
from utils.storage import StationStorage
from ui.base_ui import UIUtils, StyleManager
from ui.components import (HistoryTableComponent, ModelSelectorComponent, ScannerInputComponent,
                           StageInputsComponent, StageTabsComponent, StatsDisplayComponent)

# 전역 설정 매니저 인스턴스
config = ConfigManager()

HISTORY_COLUMNS = ["순번", "시간", "공정", "제품 코드", "모델명", "작업자", "상태", "비고"]


class ScanStationProgram:
    """공정별 제품 스캔을 검증하는 메인 GUI 어플리케이션 클래스입니다."""
    COLOR_BG = StyleManager.COLOR_BG
    COLOR_SIDEBAR_BG = StyleManager.COLOR_SIDEBAR_BG
    COLOR_TEXT = StyleManager.COLOR_TEXT
    COLOR_SUCCESS = StyleManager.COLOR_SUCCESS
    COLOR_DEFECT = StyleManager.COLOR_DEFECT
    COLOR_VELVET = "#8A0707"

    def __init__(self):
        self.root = tk.Tk()
        app_title = f"{config.get('ui.window_title', '공정 스캔 스테이션')} ({config.get('app.version', 'v1.0.0')})"
        self.root.title(app_title)
        self.root.geometry(config.get('ui.window_geometry', '1400x800'))
        self.root.configure(bg=self.COLOR_BG)

        self.font_family = config.get('ui.font', 'Malgun Gothic')
        self.data_dir = config.resolve_path('station.data_dir', 'data')
        self.export_dir = config.resolve_path('station.export_dir', 'exports')
        ensure_directory_exists(self.data_dir)
        ensure_directory_exists(self.export_dir)

        self.logger = EventLogger(os.path.join(self.data_dir, config.get('station.log_file', 'station_event_log.csv')))
        self.sound = SoundPlayer(enabled=bool(config.get('sound.enabled', True)),
                                 volume=config.get('sound.volume', 0.5))
        self.storage = StationStorage(self.data_dir)
        self.session = self._load_session()

        self.scan_delay_sec = float(config.get('ui.scan_delay', 0.0) or 0.0)
        self.last_scan_time = 0.0
        self.warning_popup: Optional[tk.Toplevel] = None

        self.status_message_job: Optional[str] = None
        self.clock_job: Optional[str] = None
        self.focus_return_job: Optional[str] = None

        self.style_manager = StyleManager(self.font_family)
        self.style_manager.setup_default_styles()
        self._setup_core_ui_structure()
        self._create_left_sidebar_content(self.left_pane)
        self._create_center_content(self.center_pane)
        self._refresh_all()
        self._update_clock()

        self.root.protocol("WM_DELETE_WINDOW", self.on_closing)
        self._log_event('STATION_START', detail={'data_dir': self.data_dir, 'stage': self.session.state.active_stage})

    # ------------------------------------------------------------------
    # 초기화
    # ------------------------------------------------------------------
    def _load_session(self) -> ScanSession:
        session = self.storage.load_session()
        if self.storage.load_warning:
            self.logger.log_event('STAGE_CONFIG_FALLBACK', detail={'error': self.storage.load_warning})
            messagebox.showerror("설정 오류", self.storage.load_warning)

        if not self.storage.has_station_state():
            try:
                session.select_stage(int(config.get('station.default_stage', 1)))
            except (SessionError, TypeError, ValueError) as e:
                print(f"기본 공정 설정 무시: {e}")
        return session

    def _setup_core_ui_structure(self):
        status_bar = tk.Frame(self.root, bg=self.COLOR_SIDEBAR_BG, bd=1, relief=tk.SUNKEN)
        status_bar.pack(side=tk.BOTTOM, fill=tk.X)
        self.status_label = tk.Label(status_bar, text="준비", anchor=tk.W, bg=self.COLOR_SIDEBAR_BG, fg=self.COLOR_TEXT,
                                     font=(self.font_family, 10))
        self.status_label.pack(side=tk.LEFT, padx=10, pady=4)
        self.clock_label = tk.Label(status_bar, anchor=tk.E, bg=self.COLOR_SIDEBAR_BG, fg=self.COLOR_TEXT,
                                    font=(self.font_family, 10))
        self.clock_label.pack(side=tk.RIGHT, padx=10, pady=4)

        self.paned_window = ttk.PanedWindow(self.root, orient=tk.HORIZONTAL)
        self.paned_window.pack(fill=tk.BOTH, expand=True)
        self.left_pane = ttk.Frame(self.paned_window, style='Sidebar.TFrame', padding=(10, 10))
        self.center_pane = ttk.Frame(self.paned_window, style='TFrame')
        self.paned_window.add(self.left_pane, weight=1)
        self.paned_window.add(self.center_pane, weight=3)

    def _create_left_sidebar_content(self, parent_frame):
        entry_font = (self.font_family, 12)

        self.model_selector = ModelSelectorComponent(parent_frame, entry_font).build()
        self.model_selector.set_callback('model_selected', self.on_model_selected)
        self.model_selector.set_callback('model_added', self.on_model_added)

        self.stage_inputs = StageInputsComponent(parent_frame, entry_font).build()
        self.stage_inputs.set_callback('employee_changed', self.on_employee_changed)
        self.stage_inputs.set_callback('whitelist_import', self.import_whitelist)

        buttons_frame = ttk.Frame(parent_frame, style='Sidebar.TFrame')
        buttons_frame.pack(fill=tk.X, side=tk.BOTTOM)
        ttk.Button(buttons_frame, text="엑셀 내보내기", command=lambda: self.export_data('xlsx')).pack(fill=tk.X, pady=(0, 5))
        ttk.Button(buttons_frame, text="CSV 내보내기", style='Secondary.TButton',
                   command=lambda: self.export_data('csv')).pack(fill=tk.X, pady=(0, 5))
        ttk.Button(buttons_frame, text="데이터 초기화", style='Danger.TButton', command=self.reset_data).pack(fill=tk.X)

    def _create_center_content(self, parent_frame):
        self.stage_tabs = StageTabsComponent(parent_frame).build()
        self.stage_tabs.set_callback('stage_selected', self.on_stage_selected)

        self.scanner = ScannerInputComponent(parent_frame, (self.font_family, 18, 'bold')).build()
        self.scanner.bind_scan_event(self.process_scan)

        self.stats_display = StatsDisplayComponent(parent_frame).build()

        self.history_table = HistoryTableComponent(parent_frame, "스캔 이력 (최신순)", HISTORY_COLUMNS).build()
        for col, width in zip(HISTORY_COLUMNS, [50, 140, 160, 160, 110, 90, 100, 260]):
            self.history_table.set_column_width(col, width)

    # ------------------------------------------------------------------
    # 화면 갱신
    # ------------------------------------------------------------------
    def _refresh_all(self):
        self.stage_tabs.set_stages(self.session.stages, self.session.state.active_stage)
        self.model_selector.set_models(self.session.state.available_models, self.session.state.model_name)
        self._rebuild_stage_inputs()
        self._refresh_stats_and_history()

    def _rebuild_stage_inputs(self):
        stage = self.session.active_stage
        self.stage_inputs.rebuild(stage, self.session.active_employee or "")
        UIUtils.chain_focus(self.stage_inputs.input_order() + [self.scanner.entry])
        self._schedule_focus_return()

    def _refresh_stats_and_history(self):
        stage = self.session.active_stage
        stats = stage_stats(self.session.history, stage.id)
        pending = pending_count(self.session.ledger, stage.id) if stage.id > 1 else None
        self.stats_display.update_stats(stats, stage.status_labels, pending)

        rows = []
        for record in self.session.history.newest_first():
            rec_stage = self.session.find_stage(record.stage)
            labels = rec_stage.status_labels if rec_stage else stage.status_labels
            stage_name = rec_stage.display_name if rec_stage else f"공정 {record.stage}"
            values = [record.seq, format_timestamp(record.timestamp), stage_name, record.code,
                      record.model_name, record.employee_id, labels.label_for(record.status), record.note]
            rows.append((values, record.status.value))
        self.history_table.set_rows(rows)

    def _schedule_focus_return(self, delay_ms: int = 50):
        if self.focus_return_job:
            self.root.after_cancel(self.focus_return_job)
        self.focus_return_job = self.root.after(delay_ms, self._return_focus_to_next_input)

    def _return_focus_to_next_input(self):
        self.focus_return_job = None
        if self.warning_popup is not None:
            return
        if not self.session.state.model_name:
            return
        target = self.stage_inputs.first_pending_input(employee_bound=bool(self.session.active_employee))
        if target is not None and target.winfo_exists():
            target.focus_set()
        else:
            self.scanner.focus_input()

    def _update_clock(self):
        if not self.root.winfo_exists():
            return
        self.clock_label['text'] = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.clock_job = self.root.after(1000, self._update_clock)

    def show_status_message(self, message: str, color: Optional[str] = None, duration: int = 4000):
        if not self.root.winfo_exists():
            return
        if self.status_message_job:
            self.root.after_cancel(self.status_message_job)
        self.status_label['text'], self.status_label['fg'] = message, color or self.COLOR_TEXT
        self.status_message_job = self.root.after(duration, self._reset_status_message)

    def _reset_status_message(self):
        self.status_message_job = None
        if self.status_label.winfo_exists():
            self.status_label['text'], self.status_label['fg'] = "준비", self.COLOR_TEXT

    # ------------------------------------------------------------------
    # 선택 상태 변경
    # ------------------------------------------------------------------
    def on_stage_selected(self, stage_id: int):
        if self.warning_popup is not None:
            return
        self._sync_employee()
        try:
            stage = self.session.select_stage(stage_id)
        except SessionError as e:
            UIUtils.show_error_message("공정 선택 오류", str(e), parent=self.root)
            return
        self.stage_tabs.set_active(stage.id)
        self._rebuild_stage_inputs()
        self._refresh_stats_and_history()
        self._log_event('STAGE_SELECTED', detail={'stage': stage.id, 'name': stage.display_name})
        self._persist()

    def on_model_selected(self, model_name: str):
        self.session.select_model(model_name)
        self._log_event('MODEL_SELECTED', detail={'model': self.session.state.model_name})
        self.show_status_message(f"모델 선택: {self.session.state.model_name}", self.COLOR_SUCCESS)
        self._persist()
        self._schedule_focus_return()

    def on_model_added(self, model_name: str):
        self.session.set_available_models(list(self.session.state.available_models) + [model_name])
        self.model_selector.set_models(self.session.state.available_models, self.session.state.model_name)
        self._persist()

    def on_employee_changed(self, employee_id: str):
        self._sync_employee(employee_id)

    def _sync_employee(self, employee_id: Optional[str] = None):
        """입력칸의 작업자 ID가 현재 공정의 지정과 다르면 새로 지정합니다."""
        employee_id = (employee_id if employee_id is not None else self.stage_inputs.get_employee()).strip()
        if not employee_id or employee_id == self.session.active_employee:
            return
        self.session.bind_employee(employee_id)
        self._log_event('EMPLOYEE_BOUND', detail={'stage': self.session.state.active_stage, 'employee': employee_id})
        self._persist()

    # ------------------------------------------------------------------
    # 스캔 처리
    # ------------------------------------------------------------------
    def process_scan(self, raw_code: str):
        if self.warning_popup is not None:
            return

        current_time = time.monotonic()
        if current_time - self.last_scan_time < self.scan_delay_sec:
            return
        self.last_scan_time = current_time

        self._sync_employee()
        result = self.session.scan(raw_code, self.stage_inputs.get_measurement(), self.stage_inputs.get_aux_values())
        if result is None:
            return
        outcome, record = result

        detail: Dict[str, Any] = {'seq': record.seq, 'code': record.code, 'stage': record.stage,
                                  'model': record.model_name, 'status': record.status.value}
        if outcome.is_accepted:
            self._log_event('SCAN_ACCEPTED', detail=detail)
        else:
            detail.update({'kind': outcome.kind.value, 'reason': outcome.reason})
            self._log_event('SCAN_REJECTED', detail=detail)

        self._persist()
        self._refresh_stats_and_history()
        self._announce_outcome(outcome, record.code)

    def _announce_outcome(self, outcome: Outcome, code: str):
        stage = self.session.active_stage
        if outcome.is_accepted:
            self.sound.play_success()
            self.stage_inputs.reset_values()
            self.scanner.set_status(f"{code} : {stage.status_labels.valid}", "normal")
            self.show_status_message(f"{code} 처리 완료", self.COLOR_SUCCESS)
            self._schedule_focus_return()
            return

        if outcome.status == ScanStatus.DEFECT:
            title, color = stage.status_labels.defect, self.COLOR_DEFECT
            self.scanner.set_status(f"{code} : {outcome.reason}", "error")
        else:
            title, color = stage.status_labels.error, self.COLOR_VELVET
            self.scanner.set_status(f"{code} : {outcome.reason}", "warning")
        self.show_fullscreen_warning(title, outcome.reason, color)

    def _start_warning_beep(self):
        self.sound.play_error(loop=True)

    def _stop_warning_beep(self):
        self.sound.stop_error()

    def show_fullscreen_warning(self, title: str, message: str, color: str):
        """확인 버튼을 누를 때까지 스캔 입력을 막는 전체 화면 경고"""
        self._start_warning_beep()
        self.scanner.set_enabled(False)
        popup = tk.Toplevel(self.root)
        self.warning_popup = popup
        popup.title(title)
        popup.attributes('-fullscreen', True)
        popup.configure(bg=color)
        popup.grab_set()

        def on_popup_close(event=None):
            self._stop_warning_beep()
            popup.destroy()
            self.warning_popup = None
            self.scanner.set_enabled(True)
            self._schedule_focus_return()

        title_font = (self.font_family, 60, 'bold')
        msg_font = (self.font_family, 30, 'bold')
        tk.Label(popup, text=title, font=title_font, fg='white', bg=color).pack(pady=(100, 50), expand=True)
        tk.Label(popup, text=message, font=msg_font, fg='white', bg=color, wraplength=self.root.winfo_screenwidth() - 100,
                 justify=tk.CENTER).pack(pady=20, expand=True)
        btn = tk.Button(popup, text="확인 (클릭)", font=msg_font, command=on_popup_close, bg='white', fg=color,
                        relief='flat', padx=20, pady=10)
        btn.pack(pady=50, expand=True)
        popup.protocol("WM_DELETE_WINDOW", on_popup_close)
        btn.focus_set()

    # ------------------------------------------------------------------
    # 저장 / 내보내기 / 초기화
    # ------------------------------------------------------------------
    def _persist(self):
        try:
            self.storage.save_session(self.session)
        except StorageError as e:
            self._log_event('STORAGE_ERROR', detail={'error': str(e)})
            self.show_status_message(f"데이터 저장 실패: {e}", self.COLOR_DEFECT, duration=8000)

    def export_data(self, file_format: str = 'xlsx'):
        if not len(self.session.history):
            UIUtils.show_info_message("내보내기", "내보낼 데이터가 없습니다.", parent=self.root)
            return

        prefix = config.get('export.file_prefix', 'scan_process_data')
        filetypes = [("Excel Workbook", "*.xlsx")] if file_format == 'xlsx' else [("CSV", "*.csv")]
        path = filedialog.asksaveasfilename(
            parent=self.root, initialdir=self.export_dir, defaultextension=f".{file_format}",
            initialfile=build_export_filename(prefix, file_format), filetypes=filetypes)
        if not path:
            return

        try:
            if file_format == 'xlsx':
                export_workbook(path, self.session.stages, self.session.history)
            else:
                export_csv(path, self.session.stages, self.session.history)
        except FileHandlingError as e:
            self._log_event('EXPORT_FAILED', detail={'path': path, 'error': str(e)})
            UIUtils.show_error_message("내보내기 실패", str(e), parent=self.root)
            return

        self._log_event('EXPORT_DONE', detail={'path': path, 'rows': len(self.session.history)})
        self.show_status_message(f"내보내기 완료: {os.path.basename(path)}", self.COLOR_SUCCESS)

    def reset_data(self):
        if not UIUtils.ask_yes_no("데이터 초기화", "모든 스캔 이력과 진행 현황을 삭제합니다.\n공정 설정과 작업자 지정은 유지됩니다.\n\n계속하시겠습니까?",
                                  parent=self.root):
            return
        removed = len(self.session.history)
        self.session.reset()
        try:
            self.storage.reset_session_data()
        except StorageError as e:
            self._log_event('STORAGE_ERROR', detail={'error': str(e)})
            UIUtils.show_error_message("저장 오류", str(e), parent=self.root)
        self._log_event('SESSION_RESET', detail={'removed_records': removed})
        self._refresh_stats_and_history()
        self.show_status_message("데이터가 초기화되었습니다.", self.COLOR_SUCCESS)

    def import_whitelist(self, stage_id: int, field_index: int):
        stage = self.session.find_stage(stage_id)
        if stage is None:
            return
        path = filedialog.askopenfilename(parent=self.root, title="허용 목록 파일 선택",
                                          filetypes=[("Excel / CSV", "*.xlsx *.csv"), ("All Files", "*.*")])
        if not path:
            return
        try:
            whitelist = load_whitelist(path)
        except FileHandlingError as e:
            UIUtils.show_error_message("목록 가져오기 실패", str(e), parent=self.root)
            return

        self._apply_stage_update(self._with_whitelist(stage, field_index, whitelist))
        count = len(whitelist.split())
        self._log_event('WHITELIST_IMPORTED', detail={'stage': stage_id, 'field': field_index, 'count': count})
        UIUtils.show_info_message("목록 가져오기",
                                  f"'{stage.fields[field_index].label}' 항목에 {count}개의 값을 불러왔습니다.", parent=self.root)

    @staticmethod
    def _with_whitelist(stage: StageConfig, field_index: int, whitelist: str) -> StageConfig:
        fields = list(stage.fields)
        fields[field_index] = dataclasses.replace(fields[field_index], whitelist=whitelist)
        return dataclasses.replace(stage, fields=tuple(fields))

    def _apply_stage_update(self, updated: StageConfig):
        stages = [updated if s.id == updated.id else s for s in self.session.stages]
        self.session.replace_stages(stages)
        try:
            self.storage.save_stages(self.session.stages)
        except StorageError as e:
            self._log_event('STORAGE_ERROR', detail={'error': str(e)})
            UIUtils.show_error_message("저장 오류", str(e), parent=self.root)
        self._rebuild_stage_inputs()

    # ------------------------------------------------------------------
    # 종료
    # ------------------------------------------------------------------
    def _cancel_all_jobs(self):
        for job_attr in ['clock_job', 'status_message_job', 'focus_return_job']:
            job_id = getattr(self, job_attr, None)
            if job_id:
                self.root.after_cancel(job_id)
                setattr(self, job_attr, None)
        self._stop_warning_beep()

    def on_closing(self):
        if messagebox.askokcancel("종료", "프로그램을 종료하시겠습니까?"):
            self._sync_employee()
            self._persist()
            self._log_event('STATION_EXIT', detail={'records': len(self.session.history)})
            # 다음 실행 때 같은 창 크기로 시작
            config.set('ui.window_geometry', self.root.geometry())
            config.save_config()
            self._cancel_all_jobs()
            self.logger.stop_logger()
            self.sound.close()
            self.root.destroy()

    def _log_event(self, event_type: str, detail: Optional[Dict] = None):
        self.logger.log_event(event_type, detail=detail, worker=self.session.active_employee or "")

    def run(self):
        self.root.mainloop()


if __name__ == "__main__":
    app = ScanStationProgram()
    app.run()

"""
runwalk - Main Application
Qt window over the session controller: renders the display snapshot and
forwards button presses as commands.
"""

import sys
from pathlib import Path

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QGroupBox, QLabel, QComboBox, QPushButton, QSpinBox, QLineEdit,
    QGridLayout, QProgressBar, QFileDialog
)
from PyQt6.QtCore import Qt, QTimer

from audio_cues import AudioCueEmitter, BEAT_SOUNDS
from close_persist_wiring import fill_settings_form, persist_runtime_ui_to_config, read_settings_form
from config import CADENCE_MAX_SPM, CADENCE_MIN_SPM, Config
from config_persistence import load_config, save_config
from logging_utils import log_event, set_log_level
from phase_engine import Phase, PhaseEvent
from session_controller import SessionController
from qt_timer_loop import QtTimerLoop
from transport_wiring import DisplaySnapshot, control_ui_state

PHASE_COLORS = {
    Phase.RUNNING: "#2e7d32",
    Phase.WALKING: "#1565c0",
}


class RunWalkWindow(QMainWindow):
    """Main application window"""

    def __init__(self, config: Config | None = None):
        super().__init__()

        self.setWindowTitle("Run/Walk Interval Timer")
        self.setMinimumSize(360, 420)
        self.setStyleSheet(self._get_stylesheet())

        # Initialize config from saved file (or defaults)
        self.config = config if config is not None else load_config()
        set_log_level(getattr(self.config, 'log_level', 'INFO'))
        # Ticks and beats run on the GUI thread alongside button handlers
        self.loop = QtTimerLoop(self)
        self.emitter = AudioCueEmitter(self.config.audio)
        self.controller = SessionController(
            self.config,
            self.loop,
            self.emitter,
            event_callback=self._on_phase_event,
            on_settings_committed=save_config,
        )
        self.loop.start()
        self.emitter.start()

        self._setup_ui()
        fill_settings_form(self, self.config.workout)

        # Refresh display (5 FPS is plenty for a one-second clock)
        self.update_timer = QTimer()
        self.update_timer.timeout.connect(self._update_display)
        self.update_timer.start(200)
        self._update_display()

    def _setup_ui(self) -> None:
        central = QWidget()
        layout = QVBoxLayout(central)

        self.phase_label = QLabel("Running")
        self.phase_label.setObjectName("phaseLabel")
        self.phase_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.phase_label)

        self.remaining_label = QLabel("00:00")
        self.remaining_label.setObjectName("remainingLabel")
        self.remaining_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.remaining_label)

        self.status_label = QLabel("")
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.status_label)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 1000)
        self.progress_bar.setTextVisible(False)
        layout.addWidget(self.progress_bar)

        stats = QGridLayout()
        self.elapsed_label = QLabel()
        self.cycle_label = QLabel()
        self.cadence_label = QLabel()
        stats.addWidget(self.elapsed_label, 0, 0)
        stats.addWidget(self.cycle_label, 0, 1)
        stats.addWidget(self.cadence_label, 1, 0, 1, 2)
        layout.addLayout(stats)

        buttons = QHBoxLayout()
        self.start_btn = QPushButton("▶ Start")
        self.start_btn.clicked.connect(self._on_start_pause)
        self.reset_btn = QPushButton("↺ Reset")
        self.reset_btn.clicked.connect(self._on_reset)
        self.mute_btn = QPushButton()
        self.mute_btn.setCheckable(True)
        self.mute_btn.setChecked(self.controller.state.muted)
        self.mute_btn.clicked.connect(self._on_mute)
        buttons.addWidget(self.start_btn)
        buttons.addWidget(self.reset_btn)
        buttons.addWidget(self.mute_btn)
        layout.addLayout(buttons)

        sound_row = QHBoxLayout()
        sound_row.addWidget(QLabel("Beat sound:"))
        self.beat_sound_combo = QComboBox()
        for sound in BEAT_SOUNDS.values():
            self.beat_sound_combo.addItem(sound.name, sound.id)
        index = self.beat_sound_combo.findData(self.emitter.beat_sound.id)
        self.beat_sound_combo.setCurrentIndex(max(0, index))
        self.beat_sound_combo.currentIndexChanged.connect(self._on_beat_sound_change)
        sound_row.addWidget(self.beat_sound_combo)
        self.test_audio_btn = QPushButton("Test audio")
        self.test_audio_btn.clicked.connect(self.controller.test_audio)
        sound_row.addWidget(self.test_audio_btn)
        layout.addLayout(sound_row)

        sample_row = QHBoxLayout()
        self.sample_path_edit = QLineEdit(self.config.audio.custom_sample_path)
        self.sample_path_edit.setPlaceholderText("Custom beat sample (.wav)")
        self.sample_path_edit.editingFinished.connect(self._on_sample_path_change)
        browse_btn = QPushButton("…")
        browse_btn.clicked.connect(self._on_browse_sample)
        sample_row.addWidget(self.sample_path_edit)
        sample_row.addWidget(browse_btn)
        layout.addLayout(sample_row)

        self.settings_group = QGroupBox("Workout settings")
        form = QGridLayout(self.settings_group)
        self.run_spin = self._spin(1, 3600, " s")
        self.walk_spin = self._spin(1, 3600, " s")
        self.cycles_spin = self._spin(1, 99, "")
        self.cadence_spin = self._spin(CADENCE_MIN_SPM, CADENCE_MAX_SPM, " spm")
        for row, (text, spin) in enumerate([
            ("Run time", self.run_spin),
            ("Walk time", self.walk_spin),
            ("Cycles", self.cycles_spin),
            ("Cadence", self.cadence_spin),
        ]):
            form.addWidget(QLabel(text), row, 0)
            form.addWidget(spin, row, 1)
        self.apply_btn = QPushButton("Apply settings")
        self.apply_btn.clicked.connect(self._on_apply_settings)
        form.addWidget(self.apply_btn, 4, 0, 1, 2)
        layout.addWidget(self.settings_group)

        self.setCentralWidget(central)

    def _spin(self, low: int, high: int, suffix: str) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(low, high)
        spin.setSuffix(suffix)
        return spin

    def _get_stylesheet(self) -> str:
        """Dark theme"""
        return """
            QMainWindow, QWidget {
                background-color: #3d3d3d;
                color: #e0e0e0;
            }
            QLabel#phaseLabel {
                font-size: 28px;
                font-weight: bold;
            }
            QLabel#remainingLabel {
                font-size: 56px;
                font-family: monospace;
            }
            QPushButton {
                background-color: #5d5d5d;
                border: 1px solid #6d6d6d;
                border-radius: 4px;
                padding: 6px 12px;
            }
            QPushButton:checked {
                background-color: #8d4d4d;
            }
            QPushButton:disabled {
                color: #8d8d8d;
            }
            QGroupBox {
                border: 1px solid #5d5d5d;
                margin-top: 12px;
                padding-top: 8px;
            }
            QProgressBar {
                background-color: #2d2d2d;
                border: none;
                height: 10px;
            }
        """

    def _update_display(self) -> None:
        snap = self.controller.snapshot()
        self._render(snap)

    def _render(self, snap: DisplaySnapshot) -> None:
        self.phase_label.setText(snap.phase_label)
        self.phase_label.setStyleSheet(f"color: {PHASE_COLORS[snap.phase]};")
        self.remaining_label.setText(snap.phase_remaining)
        self.status_label.setText(snap.status_text)
        self.progress_bar.setValue(int(snap.progress_percent * 10))
        self.elapsed_label.setText(f"{snap.elapsed} / {snap.total}")
        self.cycle_label.setText(f"Cycle {snap.cycle_index} / {snap.cycles}")
        muted = " (muted)" if snap.muted else ""
        self.cadence_label.setText(f"Cadence: {snap.cadence_spm} spm · {snap.beat_sound_name}{muted}")

        ui_state = control_ui_state(snap.status, snap.muted)
        self.start_btn.setText(ui_state.start_text)
        self.start_btn.setEnabled(ui_state.start_enabled)
        self.reset_btn.setEnabled(ui_state.reset_enabled)
        self.settings_group.setEnabled(ui_state.settings_enabled)
        self.mute_btn.setText(ui_state.mute_text)
        self.mute_btn.setChecked(snap.muted)

    def _on_start_pause(self) -> None:
        if self.controller.state.running:
            self.controller.pause()
        else:
            self.controller.start()
        self._update_display()

    def _on_reset(self) -> None:
        self.controller.reset()
        self._update_display()

    def _on_mute(self) -> None:
        self.controller.toggle_mute()
        self._update_display()

    def _on_beat_sound_change(self, index: int) -> None:
        sound_id = self.beat_sound_combo.itemData(index)
        if sound_id:
            self.controller.select_beat_sound(sound_id)
        self._update_display()

    def _on_sample_path_change(self) -> None:
        self.config.audio.custom_sample_path = self.sample_path_edit.text().strip()

    def _on_browse_sample(self) -> None:
        start_dir = str(Path(self.config.audio.custom_sample_path).expanduser().parent) if self.config.audio.custom_sample_path else ""
        path, _ = QFileDialog.getOpenFileName(self, "Choose beat sample", start_dir, "WAV files (*.wav)")
        if path:
            self.sample_path_edit.setText(path)
            self._on_sample_path_change()

    def _on_apply_settings(self) -> None:
        workout = read_settings_form(self)
        if not self.controller.commit_settings(workout):
            log_event("WARN", "UI", "Pause or reset before changing settings")
        fill_settings_form(self, self.config.workout)
        self._update_display()

    def _on_phase_event(self, event: PhaseEvent) -> None:
        self._update_display()

    def closeEvent(self, event):
        """Cleanup on close - stop timers and audio before the UI is destroyed"""
        self.update_timer.stop()
        self.controller.shutdown()
        self.loop.stop()

        persist_runtime_ui_to_config(self, self.config)

        # Save config before closing
        save_config(self.config)

        event.accept()


def main():
    """Main entry point - backup if not launched via run.py"""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')

    window = RunWalkWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()

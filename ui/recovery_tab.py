"""
Recovery Tab - Run the fragment carver on a disk image.
"""

from pathlib import Path

from PySide6.QtCore import QThread, Signal
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QFormLayout, QGroupBox,
    QLabel, QLineEdit, QToolButton, QPushButton, QProgressBar, QCheckBox,
    QFileDialog, QMessageBox, QPlainTextEdit, QSpinBox
)

from carving.carver import FileCarver
from carving.detectors import (
    DEFAULT_MIN_TEXT_LENGTH, MIB, RUN_REJECTED,
    get_detectors_by_types
)
from carving.logger import AUDIT_LOG_NAME, RecoveryLogger
from utils.helpers import format_bytes, format_event


class CarverWorker(QThread):
    """Runs one FileCarver pass off the GUI thread."""

    progress = Signal(int, int)
    counters = Signal(int, int, int)
    diagnostic = Signal(str)
    finished_signal = Signal(dict)
    error = Signal(str)

    def __init__(self, image_path: str, output_dir: str, file_types: list,
                 max_size_mib: int = 0, min_text: int = DEFAULT_MIN_TEXT_LENGTH,
                 text_whitespace: bool = False, parent=None):
        super().__init__(parent)
        self.image_path = image_path
        self.output_dir = output_dir
        self.file_types = file_types
        self.max_size_mib = max_size_mib
        self.min_text = min_text
        self.text_whitespace = text_whitespace
        self._cancelled = False

    def request_stop(self):
        self._cancelled = True

    def _forward_event(self, event):
        if event.kind != RUN_REJECTED:
            self.diagnostic.emit(format_event(event))

    def run(self):
        try:
            detectors = get_detectors_by_types(
                self.file_types,
                max_length=self.max_size_mib * MIB if self.max_size_mib else None,
                min_length=self.min_text,
                allow_whitespace=self.text_whitespace,
            )
            if not detectors:
                self.error.emit("None of the selected file types has a detector")
                return

            carver = FileCarver(
                detectors=detectors,
                output_dir=self.output_dir,
                logger=RecoveryLogger(str(Path(self.output_dir) / AUDIT_LOG_NAME)),
                event_callback=self._forward_event,
            )

            def on_progress(position, total):
                self.progress.emit(position, total)
                self.counters.emit(carver.recovered_count, carver.duplicate_count,
                                   carver.headers_without_footer)

            self.finished_signal.emit(carver.carve(
                self.image_path,
                progress_callback=on_progress,
                should_stop=lambda: self._cancelled,
            ))
        except Exception as e:
            self.error.emit(str(e))


class RecoveryTab(QWidget):
    recovery_complete = Signal(dict)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._worker = None
        self.type_boxes = {}
        self._init_ui()

    def _path_row(self, placeholder, handler):
        row = QHBoxLayout()
        edit = QLineEdit()
        edit.setPlaceholderText(placeholder)
        button = QToolButton()
        button.setText("...")
        button.clicked.connect(handler)
        row.addWidget(edit)
        row.addWidget(button)
        return edit, row

    def _init_ui(self):
        layout = QVBoxLayout(self)

        setup = QGroupBox("Scan Setup")
        form = QFormLayout(setup)
        self.image_edit, image_row = self._path_row("Raw image (.dd, .img, .raw, .bin)", self._pick_image)
        form.addRow("Disk image:", image_row)
        self.output_edit, output_row = self._path_row("Folder for carved fragments", self._pick_output)
        form.addRow("Output folder:", output_row)

        self.max_size_spin = QSpinBox()
        self.max_size_spin.setRange(0, 4096)
        self.max_size_spin.setSpecialValueText("Per format")
        self.max_size_spin.setSuffix(" MiB")
        form.addRow("Max binary size:", self.max_size_spin)

        self.min_text_spin = QSpinBox()
        self.min_text_spin.setRange(1, 1024 * 1024)
        self.min_text_spin.setValue(DEFAULT_MIN_TEXT_LENGTH)
        self.min_text_spin.setSuffix(" bytes")
        form.addRow("Min text run:", self.min_text_spin)

        self.whitespace_box = QCheckBox("Count tab/newline/CR as text")
        form.addRow("", self.whitespace_box)
        layout.addWidget(setup)

        detectors_group = QGroupBox("Detectors")
        grid = QGridLayout(detectors_group)
        for index, detector in enumerate(get_detectors_by_types()):
            box = QCheckBox(f"{detector.name.upper()}  ({detector.description})")
            box.setChecked(True)
            self.type_boxes[detector.name] = box
            grid.addWidget(box, index // 3, index % 3)
        layout.addWidget(detectors_group)

        status = QGroupBox("Status")
        status_layout = QVBoxLayout(status)
        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 1000)
        status_layout.addWidget(self.progress_bar)
        self.stats_label = QLabel("Idle")
        self.stats_label.setObjectName("statusLabel")
        status_layout.addWidget(self.stats_label)
        self.log_view = QPlainTextEdit()
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumBlockCount(2000)
        status_layout.addWidget(self.log_view)
        layout.addWidget(status)

        buttons = QHBoxLayout()
        buttons.addStretch()
        self.start_btn = QPushButton("Carve")
        self.start_btn.setObjectName("startButton")
        self.start_btn.clicked.connect(self._start)
        buttons.addWidget(self.start_btn)
        self.stop_btn = QPushButton("Cancel")
        self.stop_btn.setObjectName("stopButton")
        self.stop_btn.setEnabled(False)
        self.stop_btn.clicked.connect(self._cancel)
        buttons.addWidget(self.stop_btn)
        layout.addLayout(buttons)

    def _pick_image(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Choose Disk Image", "", "Raw Images (*.dd *.img *.raw *.bin);;All Files (*)"
        )
        if path:
            self.image_edit.setText(path)

    def _pick_output(self):
        path = QFileDialog.getExistingDirectory(self, "Choose Output Folder")
        if path:
            self.output_edit.setText(path)

    def selected_types(self):
        return [name for name, box in self.type_boxes.items() if box.isChecked()]

    def _validate(self):
        """Return an error message for the current form, or None."""
        image = self.image_edit.text().strip()
        if not image:
            return "Choose a disk image to scan."
        if not Path(image).is_file():
            return f"Disk image not found: {image}"
        if Path(image).stat().st_size == 0:
            return "The disk image is empty."
        if not self.output_edit.text().strip():
            return "Choose an output folder."
        if not self.selected_types():
            return "Enable at least one detector."
        return None

    def _start(self):
        problem = self._validate()
        if problem:
            QMessageBox.warning(self, "Cannot Start", problem)
            return

        output_dir = self.output_edit.text().strip()
        Path(output_dir).mkdir(parents=True, exist_ok=True)

        self._set_running(True)
        self.progress_bar.setValue(0)
        self.log_view.clear()
        self.stats_label.setText("Scanning...")

        self._worker = CarverWorker(
            self.image_edit.text().strip(), output_dir, self.selected_types(),
            max_size_mib=self.max_size_spin.value(),
            min_text=self.min_text_spin.value(),
            text_whitespace=self.whitespace_box.isChecked(),
        )
        self._worker.progress.connect(self._show_progress)
        self._worker.counters.connect(self._show_counters)
        self._worker.diagnostic.connect(self.log_view.appendPlainText)
        self._worker.finished_signal.connect(self._finished)
        self._worker.error.connect(self._failed)
        self._worker.start()

    def _set_running(self, running: bool):
        self.start_btn.setEnabled(not running)
        self.stop_btn.setEnabled(running)

    def _show_progress(self, position: int, total: int):
        if total:
            self.progress_bar.setValue(position * 1000 // total)

    def _show_counters(self, written: int, duplicates: int, orphans: int):
        self.stats_label.setText(
            f"Written: {written}  Duplicates: {duplicates}  Headers without footer: {orphans}"
        )

    def _finished(self, stats: dict):
        self._set_running(False)
        summary = (f"{stats.get('total_recovered', 0)} fragments "
                   f"({stats.get('duplicate_files', 0)} duplicates), "
                   f"{format_bytes(stats.get('bytes_processed', 0))} scanned")
        if stats.get('write_errors'):
            summary += f", {stats['write_errors']} write errors"
        if stats.get('cancelled'):
            self.stats_label.setText(f"Cancelled: {summary}")
        else:
            self.progress_bar.setValue(self.progress_bar.maximum())
            self.stats_label.setText(f"Done: {summary}")
        self.recovery_complete.emit(stats)

    def _failed(self, message: str):
        self._set_running(False)
        self.stats_label.setText("Failed")
        QMessageBox.critical(self, "Carving Failed", message)

    def _cancel(self):
        if self._worker and self._worker.isRunning():
            self._worker.request_stop()
            self.stop_btn.setEnabled(False)

"""
Reports Tab - Per-run totals and per-format breakdown.
"""

from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QGroupBox, QLabel,
    QPushButton, QTableWidget, QTableWidgetItem, QHeaderView, QFileDialog,
    QMessageBox, QAbstractItemView
)

from carving.reports import export_summary_to_csv, generate_recovery_summary
from utils.helpers import format_bytes


TOTALS = [
    ('total_files', "Fragments written", str),
    ('unique_files', "Unique", str),
    ('duplicate_count', "Duplicates", str),
    ('total_size', "Bytes recovered", format_bytes),
    ('largest_fragment', "Largest fragment", format_bytes),
]


class ReportsTab(QWidget):
    """Summary of one audit log, exportable to CSV."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._summary = None
        self.value_labels = {}
        self._init_ui()

    def _init_ui(self):
        layout = QVBoxLayout(self)

        header = QHBoxLayout()
        self.source_label = QLabel("No audit log loaded")
        self.source_label.setObjectName("mutedLabel")
        header.addWidget(self.source_label, 1)
        open_btn = QPushButton("Open Audit Log...")
        open_btn.clicked.connect(self._choose_log)
        header.addWidget(open_btn)
        self.export_btn = QPushButton("Export CSV...")
        self.export_btn.setEnabled(False)
        self.export_btn.clicked.connect(self._export)
        header.addWidget(self.export_btn)
        layout.addLayout(header)

        totals = QGroupBox("Totals")
        grid = QGridLayout(totals)
        for row, (key, caption, _) in enumerate(TOTALS):
            grid.addWidget(QLabel(caption), row, 0)
            value = QLabel("-")
            value.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            grid.addWidget(value, row, 1)
            self.value_labels[key] = value
        layout.addWidget(totals)

        breakdown = QGroupBox("By Format")
        breakdown_layout = QVBoxLayout(breakdown)
        self.type_table = QTableWidget(0, 3)
        self.type_table.setHorizontalHeaderLabels(["Format", "Fragments", "Share"])
        self.type_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.type_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.type_table.verticalHeader().setVisible(False)
        breakdown_layout.addWidget(self.type_table)
        layout.addWidget(breakdown, 1)

    def load_from_audit_log(self, audit_log_path: str) -> None:
        self._summary = generate_recovery_summary(audit_log_path)
        self.source_label.setText(str(Path(audit_log_path)))
        self._show()
        self.export_btn.setEnabled(True)

    def _choose_log(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Recovery Audit Log", "", "Audit Log (*.csv);;All Files (*)"
        )
        if path:
            self.load_from_audit_log(path)

    def _show(self):
        for key, _, render in TOTALS:
            self.value_labels[key].setText(render(self._summary[key]))

        by_type = sorted(self._summary['by_type'].items(), key=lambda kv: (-kv[1], kv[0]))
        total = self._summary['total_files'] or 1
        self.type_table.setRowCount(len(by_type))
        for row, (file_type, count) in enumerate(by_type):
            self.type_table.setItem(row, 0, QTableWidgetItem(file_type))
            self.type_table.setItem(row, 1, QTableWidgetItem(str(count)))
            self.type_table.setItem(row, 2, QTableWidgetItem(f"{100 * count / total:.1f}%"))

    def _export(self):
        if self._summary is None:
            return

        path, _ = QFileDialog.getSaveFileName(self, "Export Summary", "recovery_summary.csv", "CSV (*.csv)")
        if not path:
            return

        try:
            export_summary_to_csv(self._summary, path)
        except OSError as e:
            QMessageBox.critical(self, "Export Error", str(e))
            return
        QMessageBox.information(self, "Export", f"Summary written to {path}")

"""
Fragments Tab - Browse carved fragments from an audit log.
"""

import csv
from pathlib import Path

from PySide6.QtCore import Qt, QUrl
from PySide6.QtGui import QDesktopServices, QFontDatabase
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QTableWidget, QTableWidgetItem,
    QComboBox, QCheckBox, QLineEdit, QPushButton, QHeaderView, QFileDialog,
    QMessageBox, QAbstractItemView, QPlainTextEdit, QSplitter
)

from carving.reports import load_recovery_results


COLUMNS = ["ID", "File Name", "Type", "Offset", "Size", "SHA-256", "Duplicate"]
EXPORT_FIELDS = ['fragment_id', 'file_name', 'type', 'offset', 'size', 'sha256', 'duplicate', 'file_path']
ALL_TYPES = "All types"
PREVIEW_BYTES = 256


def hex_dump(data: bytes, width: int = 16) -> str:
    """Classic offset / hex / ASCII dump of ``data``."""
    lines = []
    for pos in range(0, len(data), width):
        chunk = data[pos:pos + width]
        hex_part = ' '.join(f"{b:02X}" for b in chunk)
        text_part = ''.join(chr(b) if 0x20 <= b <= 0x7E else '.' for b in chunk)
        lines.append(f"{pos:08X}  {hex_part:<{width * 3}} {text_part}")
    return '\n'.join(lines)


class ResultsTab(QWidget):
    """Fragment table with type filter, hex preview and CSV export."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._fragments = []
        self._visible = []
        self._init_ui()

    def _init_ui(self):
        layout = QVBoxLayout(self)

        filters = QHBoxLayout()
        self.type_combo = QComboBox()
        self.type_combo.addItem(ALL_TYPES)
        self.type_combo.currentTextChanged.connect(self._refresh)
        filters.addWidget(self.type_combo)

        self.hide_duplicates = QCheckBox("Hide duplicates")
        self.hide_duplicates.toggled.connect(self._refresh)
        filters.addWidget(self.hide_duplicates)

        self.hash_edit = QLineEdit()
        self.hash_edit.setPlaceholderText("SHA-256 prefix")
        self.hash_edit.textChanged.connect(self._refresh)
        filters.addWidget(self.hash_edit)

        open_log = QPushButton("Open Audit Log...")
        open_log.clicked.connect(self._choose_log)
        filters.addWidget(open_log)

        reveal = QPushButton("Show in Folder")
        reveal.clicked.connect(self._reveal_current)
        filters.addWidget(reveal)

        export = QPushButton("Export Selected")
        export.clicked.connect(self._export_selected)
        filters.addWidget(export)
        layout.addLayout(filters)

        splitter = QSplitter(Qt.Vertical)
        self.table = QTableWidget(0, len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.ExtendedSelection)
        self.table.setSortingEnabled(True)
        self.table.itemSelectionChanged.connect(self._show_preview)
        splitter.addWidget(self.table)

        self.preview = QPlainTextEdit()
        self.preview.setReadOnly(True)
        self.preview.setFont(QFontDatabase.systemFont(QFontDatabase.FixedFont))
        self.preview.setPlaceholderText("Select a fragment to preview its first bytes")
        splitter.addWidget(self.preview)
        splitter.setSizes([400, 160])
        layout.addWidget(splitter)

    def load_from_audit_log(self, audit_log_path: str) -> None:
        """Load fragments listed in output_dir/recovery_audit_log.csv."""
        self._fragments = load_recovery_results(audit_log_path)

        types = sorted({f['type'] for f in self._fragments if f['type']})
        self.type_combo.blockSignals(True)
        self.type_combo.clear()
        self.type_combo.addItems([ALL_TYPES] + types)
        self.type_combo.blockSignals(False)
        self._refresh()

    def _choose_log(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Recovery Audit Log", "", "Audit Log (*.csv);;All Files (*)"
        )
        if path:
            self.load_from_audit_log(path)

    def _refresh(self, *_):
        wanted_type = self.type_combo.currentText()
        prefix = self.hash_edit.text().strip().lower()
        hide_dupes = self.hide_duplicates.isChecked()

        self._visible = [
            f for f in self._fragments
            if (wanted_type in (ALL_TYPES, '') or f['type'] == wanted_type)
            and not (hide_dupes and f['duplicate'])
            and f['sha256'].startswith(prefix)
        ]
        self._fill_table()

    def _fill_table(self):
        self.table.setSortingEnabled(False)
        self.table.setRowCount(len(self._visible))
        for row, fragment in enumerate(self._visible):
            cells = [
                fragment['fragment_id'],
                fragment['file_name'],
                fragment['type'],
                fragment['offset'],
                fragment['size'],
                fragment['sha256'][:16],
                'Yes' if fragment['duplicate'] else 'No',
            ]
            for col, value in enumerate(cells):
                item = QTableWidgetItem()
                item.setData(Qt.DisplayRole, value)
                if col == 0:
                    item.setData(Qt.UserRole, row)
                if col == 5:
                    item.setToolTip(fragment['sha256'])
                self.table.setItem(row, col, item)
        self.table.setSortingEnabled(True)
        self.preview.clear()

    def row_count(self) -> int:
        return self.table.rowCount()

    def _fragment_at(self, row: int):
        item = self.table.item(row, 0)
        if item is None:
            return None
        return self._visible[item.data(Qt.UserRole)]

    def _selected_fragments(self):
        rows = sorted({index.row() for index in self.table.selectionModel().selectedRows()})
        return [f for f in (self._fragment_at(r) for r in rows) if f is not None]

    def _show_preview(self):
        fragment = self._fragment_at(self.table.currentRow())
        if fragment is None or not fragment['file_path']:
            self.preview.setPlainText("Fragment file not found on disk")
            return
        try:
            with open(fragment['file_path'], 'rb') as f:
                data = f.read(PREVIEW_BYTES)
        except OSError as e:
            self.preview.setPlainText(f"Cannot read fragment: {e}")
            return
        self.preview.setPlainText(hex_dump(data))

    def _reveal_current(self):
        fragment = self._fragment_at(self.table.currentRow())
        if fragment is None:
            QMessageBox.information(self, "No Selection", "Select a fragment first.")
            return
        if not fragment['file_path']:
            QMessageBox.warning(self, "Missing", f"{fragment['file_name']} is no longer on disk.")
            return
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(Path(fragment['file_path']).parent)))

    def _export_selected(self):
        fragments = self._selected_fragments()
        if not fragments:
            QMessageBox.information(self, "No Selection", "Select one or more fragments to export.")
            return

        path, _ = QFileDialog.getSaveFileName(self, "Export Fragment List", "fragments.csv", "CSV (*.csv)")
        if not path:
            return

        try:
            with open(path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=EXPORT_FIELDS, extrasaction='ignore')
                writer.writeheader()
                writer.writerows(fragments)
        except OSError as e:
            QMessageBox.critical(self, "Export Error", str(e))
            return
        QMessageBox.information(self, "Export", f"Exported {len(fragments)} fragments to {path}")

"""
Main Window - Recovery, Fragments and Reports tabs.
"""

from pathlib import Path

from PySide6.QtWidgets import QMainWindow, QTabWidget

from carving.logger import AUDIT_LOG_NAME
from ui.recovery_tab import RecoveryTab
from ui.reports_tab import ReportsTab
from ui.results_tab import ResultsTab
from ui.theme import STYLESHEET


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Fragment Rescue")
        self.resize(1100, 720)
        self.setStyleSheet(STYLESHEET)

        self.recovery_tab = RecoveryTab()
        self.results_tab = ResultsTab()
        self.reports_tab = ReportsTab()

        self.tabs = QTabWidget()
        self.tabs.setDocumentMode(True)
        for tab, title in ((self.recovery_tab, "Recovery"),
                           (self.results_tab, "Fragments"),
                           (self.reports_tab, "Reports")):
            self.tabs.addTab(tab, title)
        self.setCentralWidget(self.tabs)

        self.recovery_tab.recovery_complete.connect(self._scan_finished)
        self.statusBar().showMessage("Ready")

    def _scan_finished(self, stats: dict):
        """Point the Fragments and Reports tabs at the new audit log."""
        audit_log = Path(self.recovery_tab.output_edit.text().strip()) / AUDIT_LOG_NAME
        self.statusBar().showMessage(
            f"{stats.get('total_recovered', 0)} fragments written to {audit_log.parent}"
        )
        if not audit_log.is_file():
            return
        self.results_tab.load_from_audit_log(str(audit_log))
        self.reports_tab.load_from_audit_log(str(audit_log))
        self.tabs.setCurrentWidget(self.results_tab)

import logging
import os
from pathlib import Path

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QPushButton, QLabel, QLineEdit, QMessageBox,
                             QHBoxLayout, QListWidget, QFileDialog)
from PyQt6.QtCore import QThread, pyqtSignal

from kgvis.document_loader import combine_documents, notebook_name
from kgvis.graph_analysis import assign_clusters
from kgvis.graph_service import DEFAULT_MODEL, GraphService

logger = logging.getLogger(__name__)

DOCUMENT_FILTER = "Documents (*.pdf *.docx *.txt *.md *.json *.csv *.html *.xml);;All Files (*)"

LINE_EDIT_STYLE = """
    QLineEdit {
        background-color: #2d2d2d;
        color: #fff;
        border: 1px solid #3e3e3e;
        padding: 5px;
        border-radius: 4px;
    }
"""


class AIWorker(QThread):
    graph_ready = pyqtSignal(object, str)  # GraphData, notebook name
    summary_ready = pyqtSignal(str)
    error = pyqtSignal(str)

    def __init__(self, api_key, model_name, mode, data):
        super().__init__()
        self.api_key = api_key
        self.model_name = model_name
        self.mode = mode  # 'extract' or 'summary'
        self.data = data  # list of paths, or GraphData

    def run(self):
        try:
            service = GraphService(self.api_key, extraction_model=self.model_name, summary_model=self.model_name)
            if self.mode == 'extract':
                content = combine_documents(self.data)
                graph = service.extract_graph(content)
                assign_clusters(graph)
                self.graph_ready.emit(graph, notebook_name(self.data))
            else:
                self.summary_ready.emit(service.summarize(self.data))
        except Exception as e:
            logger.error(f"AI request failed ({self.mode}): {e}")
            self.error.emit(str(e))


class AIWidget(QWidget):
    # Results go back to MainWindow, which owns the canvas and summary panel
    graph_ready = pyqtSignal(object, str)
    summary_ready = pyqtSignal(str)

    def __init__(self):
        super().__init__()
        self.staged_files = []
        self.current_graph = None
        self.worker = None
        self.init_ui()

    def init_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 10)

        # Settings Row (API Key + Model)
        settings_layout = QHBoxLayout()

        self.api_key_input = QLineEdit()
        self.api_key_input.setPlaceholderText("Gemini API Key")
        self.api_key_input.setEchoMode(QLineEdit.EchoMode.Password)
        self.api_key_input.setStyleSheet(LINE_EDIT_STYLE)
        # Check environment variable for default
        if "GEMINI_API_KEY" in os.environ:
            self.api_key_input.setText(os.environ["GEMINI_API_KEY"])

        settings_layout.addWidget(QLabel("API Key:"))
        settings_layout.addWidget(self.api_key_input, stretch=2)

        self.model_input = QLineEdit()
        self.model_input.setPlaceholderText("Model Name")
        self.model_input.setText(DEFAULT_MODEL)
        self.model_input.setStyleSheet(LINE_EDIT_STYLE)
        settings_layout.addWidget(QLabel("Model:"))
        settings_layout.addWidget(self.model_input, stretch=1)

        layout.addLayout(settings_layout)

        # Staged documents
        self.file_list = QListWidget()
        self.file_list.setStyleSheet("background-color: #1e1e1e; color: #d4d4d4; border: 1px solid #333;")
        layout.addWidget(self.file_list)

        files_layout = QHBoxLayout()
        self.add_btn = QPushButton("Add Documents...")
        self.add_btn.clicked.connect(self.choose_files)
        self.remove_btn = QPushButton("Remove")
        self.remove_btn.clicked.connect(self.remove_selected_file)
        files_layout.addWidget(self.add_btn)
        files_layout.addWidget(self.remove_btn)
        layout.addLayout(files_layout)

        self.analyze_btn = QPushButton("Build Knowledge Graph")
        self.analyze_btn.clicked.connect(self.run_extraction)
        self.analyze_btn.setEnabled(False)
        self.analyze_btn.setStyleSheet("""
            QPushButton {
                background-color: #2e7d32; /* Green */
                color: white;
                padding: 8px;
                border-radius: 4px;
                margin-top: 10px;
            }
            QPushButton:hover { background-color: #388e3c; }
            QPushButton:disabled { background-color: #444; color: #888; }
        """)
        layout.addWidget(self.analyze_btn)

        self.summary_btn = QPushButton("Generate Summary")
        self.summary_btn.clicked.connect(self.run_summary)
        self.summary_btn.setEnabled(False)
        self.summary_btn.setStyleSheet("""
            QPushButton {
                background-color: #0d47a1; /* Blue */
                color: white;
                padding: 8px;
                border-radius: 4px;
                margin-top: 5px;
            }
            QPushButton:hover { background-color: #1565c0; }
            QPushButton:disabled { background-color: #444; color: #888; }
        """)
        layout.addWidget(self.summary_btn)

        self.status_label = QLabel("Add PDF, Word, Markdown or text files to build a graph.")
        self.status_label.setStyleSheet("color: #888; font-style: italic; margin-top: 10px;")
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)

        layout.addStretch()

    def choose_files(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Add Documents", "", DOCUMENT_FILTER)
        for path in paths:
            self.stage_file(path)

    def stage_file(self, path):
        self.staged_files.append(path)
        self.file_list.addItem(Path(path).name)
        self.analyze_btn.setEnabled(True)

    def remove_selected_file(self):
        row = self.file_list.currentRow()
        if row < 0:
            return
        self.file_list.takeItem(row)
        del self.staged_files[row]
        self.analyze_btn.setEnabled(bool(self.staged_files))

    def set_graph(self, graph):
        self.current_graph = graph
        self.summary_btn.setEnabled(graph is not None)

    def get_creds(self):
        api_key = self.api_key_input.text().strip()
        model_name = self.model_input.text().strip()
        if not api_key:
            QMessageBox.warning(self, "Missing Key", "Please enter a valid Google Gemini API Key.")
            return None, None
        if not model_name:
            QMessageBox.warning(self, "Missing Model", "Please enter a valid Model Name.")
            return None, None
        return api_key, model_name

    def run_extraction(self):
        key, model = self.get_creds()
        if not key or not self.staged_files:
            return

        self.set_busy(True)
        self.status_label.setText(f"Analyzing {len(self.staged_files)} document(s)... Please Wait.")

        self.worker = AIWorker(key, model, 'extract', list(self.staged_files))
        self.worker.graph_ready.connect(self.on_graph)
        self.worker.error.connect(self.on_error)
        self.worker.start()

    def run_summary(self):
        key, model = self.get_creds()
        if not key or self.current_graph is None:
            return

        self.set_busy(True)
        self.status_label.setText("Generating summary...")

        self.worker = AIWorker(key, model, 'summary', self.current_graph)
        self.worker.summary_ready.connect(self.on_summary)
        self.worker.error.connect(self.on_error)
        self.worker.start()

    def set_busy(self, busy):
        self.analyze_btn.setEnabled(not busy and bool(self.staged_files))
        self.summary_btn.setEnabled(not busy and self.current_graph is not None)
        self.add_btn.setEnabled(not busy)

    def on_graph(self, graph, name):
        # Staged files stay until the window accepts the graph
        self.set_busy(False)
        self.status_label.setText(f"Mapped {len(graph.nodes)} entities and {len(graph.links)} relationships.")
        self.graph_ready.emit(graph, name)

    def clear_staged(self):
        self.staged_files = []
        self.file_list.clear()
        self.analyze_btn.setEnabled(False)

    def on_summary(self, text):
        self.set_busy(False)
        self.status_label.setText("Summary ready. Check the Right Panel.")
        self.summary_ready.emit(text)

    def on_error(self, err_msg):
        QMessageBox.critical(self, "AI Error", err_msg)
        self.status_label.setText("Analysis Failed.")
        self.set_busy(False)

import html
import json
import logging
import os
import sys

from PyQt6.QtWidgets import (QApplication, QMainWindow, QFileDialog, QMessageBox, QVBoxLayout, QWidget,
                             QLabel, QSplitter, QTextEdit, QTabWidget)
from PyQt6.QtGui import QAction, QPalette, QColor
from PyQt6.QtCore import Qt

from kgvis.graph_analysis import assign_clusters, key_entities
from kgvis.graph_model import GraphData, GraphValidationError
from kgvis.ui.ai_widget import AIWidget
from kgvis.ui.graph_widget import GraphWidget
from kgvis.ui.preferences import DEFAULT_PHYSICS, PreferencesDialog

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TAB_STYLE = """
    QTabWidget::pane { border: 0; }
    QTabBar::tab { background: #2d2d2d; color: #aaa; padding: 8px 15px; }
    QTabBar::tab:selected { background: #3e3e3e; color: #fff; }
"""

# Palette roles, text panels (bg, fg), info bar (bg, fg, border), canvas (bg, node text, highlight)
THEMES = {
    "Dark": {
        'palette': {
            'Window': "#353535", 'WindowText': "#ffffff", 'Base': "#191919", 'AlternateBase': "#353535",
            'Text': "#ffffff", 'Button': "#353535", 'ButtonText': "#ffffff",
            'Highlight': "#2a82da", 'HighlightedText': "#000000",
        },
        'text': ("#1e1e1e", "#d4d4d4"),
        'info': ("#252526", "#ccc", "#3e3e3e"),
        'canvas': ("#0f172a", "#f8fafc", "#ffffff"),
    },
    "Light": {
        'palette': {
            'Window': "#f0f0f0", 'WindowText': "#000000", 'Base': "#ffffff", 'AlternateBase': "#e9e7e3",
            'Text': "#000000", 'Button': "#f0f0f0", 'ButtonText': "#000000",
            'Highlight': "#4ca3e0", 'HighlightedText': "#ffffff",
        },
        'text': ("#ffffff", "#000000"),
        'info': ("#e0e0e0", "#333", "#ccc"),
        'canvas': ("#f1f5f9", "#0f172a", "#0f172a"),
    },
}


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("KGVis - Knowledge Graph Visualizer")
        self.resize(1200, 800)

        # State
        self.current_theme = "Dark"
        self.graph = None
        self.notebook = None
        self.physics = dict(DEFAULT_PHYSICS)

        self.init_ui()
        self.setup_theme(self.current_theme)

    def init_ui(self):
        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)

        self.main_layout = QVBoxLayout(self.central_widget)
        self.main_layout.setContentsMargins(0, 0, 0, 0)

        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        self.main_layout.addWidget(self.splitter)

        # --- Left Panel Container ---
        self.left_container = QWidget()
        self.left_layout = QVBoxLayout(self.left_container)
        self.left_layout.setContentsMargins(0, 0, 0, 0)
        self.left_layout.setSpacing(0)

        self.info_label = QLabel("Add documents to build a knowledge graph.")
        self.info_label.setStyleSheet("padding: 5px; background-color: #252526; color: #ccc; border-bottom: 1px solid #3e3e3e;")
        self.left_layout.addWidget(self.info_label)

        self.tab_widget = QTabWidget()
        self.tab_widget.setStyleSheet(TAB_STYLE)

        # Tab 1: Analysis
        self.ai_panel = AIWidget()
        self.ai_panel.graph_ready.connect(self.on_graph_extracted)
        self.ai_panel.summary_ready.connect(self.on_summary)
        self.tab_widget.addTab(self.ai_panel, "Analysis")

        # Tab 2: Node details
        self.details_panel = QTextEdit()
        self.details_panel.setReadOnly(True)
        self.details_panel.setText("Select a node to view details.")
        self.tab_widget.addTab(self.details_panel, "Details")

        self.left_layout.addWidget(self.tab_widget)
        self.splitter.addWidget(self.left_container)

        # --- Right Panel (Graph + Summary) ---
        self.right_tab_widget = QTabWidget()
        self.right_tab_widget.setStyleSheet(TAB_STYLE)

        self.graph_widget = GraphWidget()
        self.graph_widget.nodeClicked.connect(self.on_node_clicked)
        self.right_tab_widget.addTab(self.graph_widget, "Graph")

        self.summary_panel = QTextEdit()
        self.summary_panel.setReadOnly(True)
        self.summary_panel.setPlaceholderText("Generate a summary from the Analysis tab.")
        self.right_tab_widget.addTab(self.summary_panel, "Summary")

        self.splitter.addWidget(self.right_tab_widget)

        # Set Splitter Ratios (30% / 70%)
        self.splitter.setStretchFactor(0, 30)
        self.splitter.setStretchFactor(1, 70)

        self.create_menu()

    def create_menu(self):
        menu = self.menuBar()
        menu.clear()

        file_menu = menu.addMenu("File")
        self._add_action(file_menu, "Add Documents...", self.ai_panel.choose_files, "Ctrl+O")
        self._add_action(file_menu, "Open Graph...", self.open_graph_dialog, "Ctrl+Shift+O")
        self._add_action(file_menu, "Save Graph...", self.save_graph_dialog, "Ctrl+S")
        self._add_action(file_menu, "Export Image...", self.export_image_dialog, "Ctrl+E")
        self._add_action(file_menu, "Exit", self.close)

        edit_menu = menu.addMenu("Edit")
        self._add_action(edit_menu, "Preferences", self.open_preferences)

        view_menu = menu.addMenu("View")
        self._add_action(view_menu, "Reset View", self.graph_widget.reset_view)
        self._add_action(view_menu, "Reheat Layout", self.graph_widget.reheat)

    def _add_action(self, menu, text, slot, shortcut=None):
        action = QAction(text, self)
        if shortcut:
            action.setShortcut(shortcut)
        action.triggered.connect(slot)
        menu.addAction(action)
        return action

    def open_preferences(self):
        dlg = PreferencesDialog(self, self.current_theme, self.physics)
        dlg.settings_applied.connect(self.apply_preferences)
        dlg.exec()

    def apply_preferences(self, theme, physics):
        if theme != self.current_theme:
            self.setup_theme(theme)
            self.current_theme = theme

        if physics != self.physics:
            self.physics = physics
            self.graph_widget.set_physics(**physics)
            if self.graph is not None:
                # Fresh simulation with the new constants
                self.show_graph(self.graph, self.notebook)

    def setup_theme(self, theme_name):
        app = QApplication.instance()
        app.setStyle("Fusion")
        theme = THEMES.get(theme_name, THEMES["Dark"])

        palette = QPalette()
        for role, color in theme['palette'].items():
            palette.setColor(getattr(QPalette.ColorRole, role), QColor(color))
        app.setPalette(palette)

        text_bg, text_fg = theme['text']
        sheet = f"QTextEdit {{ background-color: {text_bg}; color: {text_fg}; font-size: 13px; border: none; padding: 10px; }}"
        self.details_panel.setStyleSheet(sheet)
        self.summary_panel.setStyleSheet(sheet)

        bg, fg, bd = theme['info']
        self.info_label.setStyleSheet(f"padding: 5px; background-color: {bg}; color: {fg}; border-bottom: 1px solid {bd};")

        canvas_bg, node_text, highlight = theme['canvas']
        self.graph_widget.bg_color = QColor(canvas_bg)
        self.graph_widget.node_text_color = QColor(node_text)
        self.graph_widget.highlight_color = QColor(highlight)
        self.graph_widget.update()

    # Graph lifecycle

    def show_graph(self, graph, name=None):
        """Replaces the displayed graph. Returns False when the graph is rejected."""
        try:
            self.graph_widget.set_graph(graph)
        except GraphValidationError as e:
            logger.error(f"Rejected graph: {e}")
            QMessageBox.critical(self, "Invalid Graph", str(e))
            return False

        self.graph = graph
        self.notebook = name or "graph"
        self.graph_widget.set_selected_node(None)
        self.ai_panel.set_graph(graph)
        self.details_panel.setText("Select a node to view details.")
        self.summary_panel.clear()

        central = ", ".join(key_entities(graph, limit=3))
        self.info_label.setText(f"{self.notebook}: {len(graph.nodes)} entities, {len(graph.links)} links"
                                + (f" (key: {central})" if central else ""))
        self.setWindowTitle(f"KGVis - {self.notebook}")
        self.right_tab_widget.setCurrentIndex(0)
        return True

    def on_graph_extracted(self, graph, name):
        if self.show_graph(graph, name):
            self.ai_panel.clear_staged()

    def on_summary(self, text):
        self.summary_panel.setMarkdown(text)
        self.right_tab_widget.setCurrentIndex(1)

    def on_node_clicked(self, node):
        """Updates the details panel and highlight for the clicked node."""
        self.graph_widget.set_selected_node(node.id)

        text = f"<p><b>{html.escape(node.type.value.upper())}</b>"
        if node.cluster:
            text += f" &middot; {html.escape(node.cluster)}"
        text += f"</p><h2>{html.escape(node.label)}</h2>"
        text += f"<p><i>\"{html.escape(node.description)}\"</i></p>"

        text += "<h3>Linked Entities</h3><ul>"
        connections = self.graph.links_for(node.id) if self.graph else []
        if connections:
            for link, other_id in connections:
                other = self.graph.find_node(other_id)
                other_label = other.label if other else other_id
                text += f"<li><b>{html.escape(link.label)}</b> {html.escape(other_label)}</li>"
        else:
            text += "<li><i>No connections</i></li>"
        text += "</ul>"

        self.details_panel.setHtml(text)
        self.tab_widget.setCurrentIndex(1)

    # Files

    def open_graph_dialog(self):
        fname, _ = QFileDialog.getOpenFileName(self, "Open Graph", "", "Graph JSON (*.json);;All Files (*)")
        if fname:
            self.load_graph_file(fname)

    def load_graph_file(self, path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                graph = GraphData.from_dict(json.load(f))
            assign_clusters(graph)
        except Exception as e:
            logger.error(f"Failed to load graph file {path}: {e}")
            QMessageBox.critical(self, "Error", f"Failed to load graph:\n{e}")
            return
        self.show_graph(graph, os.path.basename(path))

    def save_graph_dialog(self):
        if self.graph is None:
            return
        fname, _ = QFileDialog.getSaveFileName(self, "Save Graph", f"kg-{self.notebook}.json", "Graph JSON (*.json)")
        if not fname:
            return
        try:
            with open(fname, 'w', encoding='utf-8') as f:
                json.dump(self.graph.to_dict(), f, indent=2)
            logger.info(f"Saved graph to {fname}")
        except OSError as e:
            QMessageBox.critical(self, "Error", f"Failed to save graph:\n{e}")

    def export_image_dialog(self):
        if self.graph is None:
            return
        fname, _ = QFileDialog.getSaveFileName(self, "Export Image", f"kg-{self.notebook}.svg",
                                               "SVG Image (*.svg);;PNG Image (*.png)")
        if fname and not self.graph_widget.export_image(fname):
            QMessageBox.critical(self, "Error", f"Failed to export image to {fname}")

    def closeEvent(self, event):
        self.graph_widget.clear()
        super().closeEvent(event)


def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()

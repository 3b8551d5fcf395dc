from PyQt6.QtWidgets import QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QComboBox, QPushButton, QDoubleSpinBox
from PyQt6.QtCore import pyqtSignal

DEFAULT_PHYSICS = {
    'link_distance': 150.0,
    'charge_strength': -400.0,
    'collision_radius': 60.0,
}


class PreferencesDialog(QDialog):
    settings_applied = pyqtSignal(str, dict)  # theme, physics

    def __init__(self, parent=None, current_theme="Dark", physics=None):
        super().__init__(parent)
        self.setWindowTitle("Preferences")
        self.resize(320, 200)
        physics = dict(DEFAULT_PHYSICS, **(physics or {}))

        self.layout = QVBoxLayout(self)
        form = QFormLayout()

        # Theme
        self.theme_combo = QComboBox()
        self.theme_combo.addItems(["Dark", "Light"])
        self.theme_combo.setCurrentIndex(0 if current_theme == "Dark" else 1)
        form.addRow("Theme:", self.theme_combo)

        # Layout physics
        self.distance_spin = self._spin(10, 1000, physics['link_distance'])
        form.addRow("Link distance:", self.distance_spin)

        # Shown as a positive repulsion, stored as a negative charge
        self.repulsion_spin = self._spin(0, 5000, -physics['charge_strength'])
        form.addRow("Repulsion:", self.repulsion_spin)

        self.collision_spin = self._spin(0, 300, physics['collision_radius'])
        form.addRow("Collision radius:", self.collision_spin)

        self.layout.addLayout(form)

        # Buttons
        btn_layout = QHBoxLayout()
        self.btn_defaults = QPushButton("Defaults")
        self.btn_defaults.clicked.connect(self.restore_defaults)
        self.btn_save = QPushButton("Save")
        self.btn_save.clicked.connect(self.on_save)
        self.btn_cancel = QPushButton("Cancel")
        self.btn_cancel.clicked.connect(self.close)

        btn_layout.addWidget(self.btn_defaults)
        btn_layout.addStretch()
        btn_layout.addWidget(self.btn_cancel)
        btn_layout.addWidget(self.btn_save)
        self.layout.addLayout(btn_layout)

        # Style
        self.setStyleSheet("""
            QDialog { background-color: #2d2d2d; color: white; }
            QLabel { color: white; }
            QComboBox, QDoubleSpinBox { background-color: #3e3e3e; color: white; padding: 5px; border: 1px solid #555; }
            QPushButton { background-color: #0d47a1; color: white; padding: 5px 15px; border: none; }
            QPushButton:hover { background-color: #1565c0; }
        """)

    def _spin(self, low, high, value):
        spin = QDoubleSpinBox()
        spin.setRange(low, high)
        spin.setDecimals(0)
        spin.setValue(value)
        return spin

    def restore_defaults(self):
        self.distance_spin.setValue(DEFAULT_PHYSICS['link_distance'])
        self.repulsion_spin.setValue(-DEFAULT_PHYSICS['charge_strength'])
        self.collision_spin.setValue(DEFAULT_PHYSICS['collision_radius'])

    def physics(self):
        return {
            'link_distance': self.distance_spin.value(),
            'charge_strength': -self.repulsion_spin.value(),
            'collision_radius': self.collision_spin.value(),
        }

    def on_save(self):
        self.settings_applied.emit(self.theme_combo.currentText(), self.physics())
        self.accept()

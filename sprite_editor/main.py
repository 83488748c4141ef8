import sys
import logging
from pathlib import Path
from typing import Optional
from PyQt6.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                              QHBoxLayout, QPushButton, QFileDialog, QMessageBox,
                              QListWidget, QLabel, QGroupBox, QSpinBox, QComboBox)
from PyQt6.QtCore import QSize
from PyQt6.QtGui import QIcon

from .core import SpriteEditor, SpriteEditorError
from .core.config import APP_NAME, APP_VERSION, PLAYBACK_MODES, MIN_FRAME_RATE, MAX_FRAME_RATE
from .core.logging import setup_logging
from .widgets import FramePreviewWidget

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, editor: Optional[SpriteEditor] = None):
        super().__init__()

        self.editor = editor or SpriteEditor()
        self.editor.on_render = self.on_render
        self.editor.on_notify = self.on_notify

        # Remember last used directories
        self.last_export_dir = ""
        self.last_import_dir = ""

        self.init_ui()
        self.setWindowTitle(f"{APP_NAME} {APP_VERSION}")
        self.resize(900, 600)

        if self.editor.current_sprite is None:
            self.editor.load_sprites()
        self.refresh_frame_list()
        self.preview.refresh()

    def init_ui(self):
        central_widget = QWidget()
        main_layout = QHBoxLayout()
        central_widget.setLayout(main_layout)

        main_layout.addWidget(self.create_frame_panel())

        self.preview = FramePreviewWidget(self.editor.animation)
        self.preview.frame_info_changed.connect(self.update_frame_info)
        main_layout.addWidget(self.preview)

        self.setCentralWidget(central_widget)
        self.create_menu_bar()

    def create_frame_panel(self) -> QWidget:
        group = QGroupBox("Frames")
        layout = QVBoxLayout()

        self.frame_list = QListWidget()
        self.frame_list.setIconSize(QSize(48, 48))
        self.frame_list.currentRowChanged.connect(self.on_frame_selected)
        layout.addWidget(self.frame_list)

        button_layout = QHBoxLayout()
        self.add_frame_button = QPushButton("Add")
        self.add_frame_button.clicked.connect(self.add_frame)
        button_layout.addWidget(self.add_frame_button)

        self.duplicate_frame_button = QPushButton("Duplicate")
        self.duplicate_frame_button.clicked.connect(self.duplicate_frame)
        button_layout.addWidget(self.duplicate_frame_button)

        self.delete_frame_button = QPushButton("Delete")
        self.delete_frame_button.clicked.connect(self.delete_frame)
        button_layout.addWidget(self.delete_frame_button)
        layout.addLayout(button_layout)

        playback_layout = QHBoxLayout()
        playback_layout.addWidget(QLabel("FPS:"))
        self.fps_spinbox = QSpinBox()
        self.fps_spinbox.setRange(MIN_FRAME_RATE, MAX_FRAME_RATE)
        self.fps_spinbox.setValue(self.editor.animation.frame_rate)
        self.fps_spinbox.valueChanged.connect(self.on_frame_rate_changed)
        playback_layout.addWidget(self.fps_spinbox)

        playback_layout.addWidget(QLabel("Mode:"))
        self.mode_combo = QComboBox()
        self.mode_combo.addItems(list(PLAYBACK_MODES))
        self.mode_combo.setCurrentText(self.editor.animation.playback_mode)
        self.mode_combo.currentTextChanged.connect(self.editor.animation.set_playback_mode)
        playback_layout.addWidget(self.mode_combo)
        layout.addLayout(playback_layout)

        self.frame_info_label = QLabel("Frame: 0/0")
        layout.addWidget(self.frame_info_label)

        group.setLayout(layout)
        return group

    def create_menu_bar(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        file_menu.addAction("New Sprite", self.new_sprite)
        file_menu.addSeparator()
        file_menu.addAction("Export PNG", self.export_png)
        file_menu.addAction("Export SVG", self.export_svg)
        file_menu.addAction("Export GIF", self.export_gif)
        file_menu.addSeparator()
        file_menu.addAction("Import Sprites", self.import_sprites)
        file_menu.addAction("Export Sprites", self.export_sprites)
        file_menu.addSeparator()
        file_menu.addAction("Exit", self.close)

        help_menu = menubar.addMenu("Help")
        help_menu.addAction("About", self.show_about)

    # ----- Editor callbacks -----
    def on_render(self):
        if hasattr(self, 'preview'):
            self.preview.refresh()
        if hasattr(self, 'frame_list') and self.frame_list.currentRow() != self.editor.animation.current_frame_index:
            self.frame_list.blockSignals(True)
            self.frame_list.setCurrentRow(self.editor.animation.current_frame_index)
            self.frame_list.blockSignals(False)

    def on_notify(self, message: str, level: str):
        self.statusBar().showMessage(message, 3000)

    def update_frame_info(self, current: int, total: int, duration: int):
        self.frame_info_label.setText(f"Frame: {current}/{total} ({duration} ms)")

    def refresh_frame_list(self):
        controller = self.editor.animation
        self.frame_list.blockSignals(True)
        self.frame_list.clear()
        sprite = controller.get_current_sprite()
        if sprite is not None:
            for i, frame in enumerate(sprite.frames):
                self.frame_list.addItem(frame.name)
                thumb = controller.get_frame_thumbnail(i, 48)
                if thumb is not None:
                    self.frame_list.item(i).setIcon(QIcon(self.preview.pil_to_pixmap(thumb)))
            self.frame_list.setCurrentRow(controller.current_frame_index)
        self.frame_list.blockSignals(False)

    # ----- Frame actions -----
    def on_frame_selected(self, row: int):
        if row >= 0:
            self.editor.animation.set_current_frame(row)

    def on_frame_rate_changed(self, fps: int):
        self.editor.animation.set_frame_rate(fps)
        self.preview.update_info()

    def add_frame(self):
        self.editor.animation.add_frame(self.editor.animation.current_frame_index)
        self.refresh_frame_list()

    def duplicate_frame(self):
        self.editor.animation.duplicate_frame()
        self.refresh_frame_list()

    def delete_frame(self):
        self.editor.animation.delete_frame()
        self.refresh_frame_list()

    def new_sprite(self):
        self.editor.create_new_sprite()
        self.refresh_frame_list()

    # ----- File actions -----
    def _ask_save_path(self, title: str, default_name: str, file_filter: str) -> str:
        default_path = str(Path(self.last_export_dir or ".") / default_name)
        file_path, _ = QFileDialog.getSaveFileName(self, title, default_path, file_filter)
        if file_path:
            self.last_export_dir = str(Path(file_path).parent)
        return file_path

    def _run_export(self, export, file_path: str):
        try:
            export(file_path)
            QMessageBox.information(self, "Success", f"Saved to:\n{file_path}")
        except SpriteEditorError as e:
            logger.error("Export failed: %s", e)
            QMessageBox.critical(self, "Error", f"Export failed:\n{e}")

    def _sprite_name(self) -> str:
        sprite = self.editor.current_sprite
        return sprite.name if sprite is not None else "sprite"

    def export_png(self):
        file_path = self._ask_save_path("Save PNG", f"{self._sprite_name()}.png", "PNG Files (*.png)")
        if file_path:
            self._run_export(self.editor.export_png, file_path)

    def export_svg(self):
        file_path = self._ask_save_path("Save SVG", f"{self._sprite_name()}.svg", "SVG Files (*.svg)")
        if file_path:
            self._run_export(self.editor.export_svg, file_path)

    def export_gif(self):
        file_path = self._ask_save_path("Save GIF", f"{self._sprite_name()}.gif", "GIF Files (*.gif)")
        if file_path:
            self._run_export(self.editor.export_gif, file_path)

    def export_sprites(self):
        file_path = self._ask_save_path("Export Sprites", "sprites.json", "JSON Files (*.json)")
        if file_path:
            try:
                self.editor.export_sprites(file_path)
            except OSError as e:
                QMessageBox.critical(self, "Error", f"Export failed:\n{e}")

    def import_sprites(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Import Sprites",
            self.last_import_dir,
            "JSON Files (*.json)"
        )
        if not file_path:
            return

        self.last_import_dir = str(Path(file_path).parent)
        try:
            self.editor.import_sprites(file_path)
        except SpriteEditorError as e:
            QMessageBox.critical(self, "Error", f"Import failed:\n{e}")
            return
        self.refresh_frame_list()

    def show_about(self):
        QMessageBox.about(
            self,
            f"About {APP_NAME}",
            f"{APP_NAME} {APP_VERSION}\n\n"
            "Multi-frame, multi-layer pixel sprite editor.\n"
            "Export to PNG, SVG and animated GIF."
        )

    def closeEvent(self, event):
        """Write pending changes before closing"""
        self.editor.close()
        super().closeEvent(event)


def main():
    setup_logging()

    app = QApplication(sys.argv)

    app.setStyle('Fusion')

    window = MainWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == '__main__':
    main()

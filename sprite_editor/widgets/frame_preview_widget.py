from PyQt6.QtWidgets import QWidget, QLabel, QVBoxLayout, QPushButton, QHBoxLayout
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QPixmap, QImage
from PIL import Image
from ..core.animation import AnimationController
from ..core.compositor import LayerCompositor
from ..core.utils import round_half_up


class FramePreviewWidget(QWidget):
    # Signal to emit frame info: (current_frame, total_frames, duration_ms)
    frame_info_changed = pyqtSignal(int, int, int)

    def __init__(self, controller: AnimationController, preview_size: int = 400, parent=None):
        super().__init__(parent)

        self.controller = controller
        self.preview_size = preview_size

        self.init_ui()
        self.refresh()

    def init_ui(self):
        layout = QVBoxLayout()
        layout.setContentsMargins(5, 5, 5, 5)
        layout.setSpacing(8)

        control_layout = QHBoxLayout()

        self.play_button = QPushButton("▶ Play")
        self.play_button.clicked.connect(self.toggle_play)
        control_layout.addWidget(self.play_button)

        self.stop_button = QPushButton("⏹ Stop")
        self.stop_button.clicked.connect(self.stop)
        control_layout.addWidget(self.stop_button)

        self.prev_button = QPushButton("⏮ Prev")
        self.prev_button.clicked.connect(self.prev_frame)
        control_layout.addWidget(self.prev_button)

        self.next_button = QPushButton("⏭ Next")
        self.next_button.clicked.connect(self.next_frame)
        control_layout.addWidget(self.next_button)

        layout.addLayout(control_layout)

        self.preview_label = QLabel("No Sprite")
        self.preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.preview_label.setFixedSize(self.preview_size, self.preview_size)
        self.preview_label.setScaledContents(False)
        # Light gray background to make transparent areas visible
        self.preview_label.setStyleSheet("QLabel { background-color: #e8e8e8; border: 2px solid #ccc; }")
        layout.addWidget(self.preview_label)

        self.setLayout(layout)

    def refresh(self):
        """Redraw the working layer stack of the current frame"""
        stack = self.controller.layer_stack
        if self.controller.get_current_sprite() is None:
            self.preview_label.setText("No Sprite")
            self.frame_info_changed.emit(0, 0, 0)
            return

        grid = stack.get_composite_image_data()
        image = LayerCompositor.to_image(grid, stack.width, stack.height)
        pixmap = self.pil_to_pixmap(image)

        # Integer zoom keeps pixels square
        zoom = max(1, min(self.preview_size // max(1, image.width),
                          self.preview_size // max(1, image.height)))
        scaled_pixmap = pixmap.scaled(
            image.width * zoom,
            image.height * zoom,
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.FastTransformation
        )
        self.preview_label.setPixmap(scaled_pixmap)
        self.update_info()
        self.update_buttons()

    def pil_to_pixmap(self, pil_image: Image.Image) -> QPixmap:
        """Convert PIL image to QPixmap with transparency support"""
        if pil_image.mode != 'RGBA':
            pil_image = pil_image.convert('RGBA')

        data = pil_image.tobytes('raw', 'RGBA')
        qimage = QImage(
            data,
            pil_image.width,
            pil_image.height,
            pil_image.width * 4,
            QImage.Format.Format_RGBA8888
        )
        return QPixmap.fromImage(qimage)

    def toggle_play(self):
        self.controller.toggle_playback()
        self.update_buttons()

    def stop(self):
        self.controller.stop()
        self.update_buttons()

    def next_frame(self):
        count = self.controller.get_frame_count()
        if count == 0:
            return
        self.controller.set_current_frame((self.controller.current_frame_index + 1) % count)

    def prev_frame(self):
        count = self.controller.get_frame_count()
        if count == 0:
            return
        self.controller.set_current_frame((self.controller.current_frame_index - 1) % count)

    def update_buttons(self):
        self.play_button.setText("⏸ Pause" if self.controller.is_playing else "▶ Play")

    def update_info(self):
        """Emit signal with current frame info"""
        total = self.controller.get_frame_count()
        if total:
            current = self.controller.current_frame_index + 1
            duration = round_half_up(self.controller.frame_duration_ms)
            self.frame_info_changed.emit(current, total, duration)
        else:
            self.frame_info_changed.emit(0, 0, 0)

"""
WebP Drop
Drag-and-drop batch conversion of images to WebP with the cwebp encoder.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QCheckBox, QSlider, QProgressBar, QSpinBox,
    QFileDialog, QMessageBox, QFrame, QGroupBox, QComboBox, QSizePolicy,
    QTableWidget, QTableWidgetItem, QHeaderView, QPlainTextEdit, QAbstractItemView
)
from PyQt6.QtCore import Qt, QThread, QObject, QSettings, pyqtSignal
from PyQt6.QtGui import QPixmap, QImage, QColor

from PIL import Image, ImageOps
from pillow_heif import register_heif_opener

from webpdrop import logs
from webpdrop.config import APP_NAME, APP_ORG, load_config
from webpdrop.errors import QueueBusyError
from webpdrop.estimator import SizeEstimator
from webpdrop.models import (
    BatchProgress, BatchSummary, CompressionSettings, ConversionStatus, OutputPolicy, QualityPreset
)
from webpdrop.session import ConversionSession

logger = logging.getLogger("webpdrop.gui")

# HEIC originals need the plugin for previews
register_heif_opener()

PREVIEW_SIZE = 220


# -----------------------------------------------------------------------------
# Visual Theme
# -----------------------------------------------------------------------------

DARK_THEME_STYLESHEET = """
QWidget {
    color: #E0E0E0;
    background-color: #1E1E1E;
    font-family: "Segoe UI", sans-serif;
    font-size: 10pt;
}
QGroupBox {
    border: 1px solid #3A3A3A;
    border-radius: 8px;
    margin-top: 1.2em;
    font-weight: bold;
    background-color: #252526;
    padding: 18px 12px 10px 12px;
}
QGroupBox::title {
    subcontrol-origin: margin;
    left: 10px;
    padding: 0 5px;
    color: #64B5F6;
}
QPushButton {
    background-color: #3C3C3C;
    border: 1px solid #505050;
    border-radius: 6px;
    padding: 6px 12px;
}
QPushButton:hover { background-color: #4A4A4A; }
QPushButton:disabled { background-color: #252525; color: #606060; }
QPushButton[class="primary"] {
    background-color: #0D47A1;
    border: 1px solid #1565C0;
    color: #FFFFFF;
    font-weight: bold;
}
QTableWidget, QPlainTextEdit {
    background-color: #181818;
    border: 1px solid #404040;
    border-radius: 4px;
}
QPlainTextEdit { font-family: "Menlo", "Consolas", monospace; font-size: 9pt; }
QProgressBar {
    border: 1px solid #404040;
    border-radius: 6px;
    text-align: center;
    background-color: #202020;
}
QProgressBar::chunk { background-color: #1976D2; border-radius: 5px; }
"""

DROP_ZONE_STYLE = "border: 2px dashed {color}; border-radius: 12px; background-color: {background};"

STATUS_COLORS = {
    ConversionStatus.PENDING: '#9E9E9E',
    ConversionStatus.CONVERTED: '#66BB6A',
    ConversionStatus.FAILED: '#EF5350',
    ConversionStatus.SKIPPED: '#FFA726',
}


class LogBridge(QObject):
    """Forwards messages from any thread to the GUI thread."""

    message = pyqtSignal(str)

    def forward(self, text: str):
        self.message.emit(text)


class ConversionWorker(QThread):
    """Background thread running one conversion batch."""

    progress_updated = pyqtSignal(int, int, str)  # current, total, current_file
    conversion_complete = pyqtSignal(object)  # BatchSummary
    error_occurred = pyqtSignal(str)

    def __init__(self, session: ConversionSession, parent=None):
        super().__init__(parent)
        self.session = session

    def _report(self, progress: BatchProgress):
        self.progress_updated.emit(progress.completed, progress.total, progress.current_file)

    def run(self):
        """Execute the batch conversion process."""
        try:
            summary = self.session.run_batch(self._report)
            self.conversion_complete.emit(summary)
        except Exception as e:
            logger.error(f"Conversion batch failed: {e}", exc_info=True)
            self.error_occurred.emit(f"Conversion failed: {e}")


class DropZone(QFrame):
    """Drop target accepting image files and folders."""

    files_dropped = pyqtSignal(list)  # list of local paths (may be empty)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAcceptDrops(True)
        self.setMinimumHeight(140)

        layout = QVBoxLayout(self)
        title = QLabel("Drop images or folders here")
        title.setStyleSheet("font-size: 15pt; font-weight: bold; background: transparent;")
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(title)
        hint = QLabel("PNG, JPEG, TIFF, GIF, HEIC, BMP, WebP")
        hint.setStyleSheet("color: #888888; background: transparent;")
        hint.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(hint)

        self.set_targeted(False)

    def set_targeted(self, targeted: bool):
        if targeted:
            self.setStyleSheet(DROP_ZONE_STYLE.format(color="#64B5F6", background="#1A2733"))
        else:
            self.setStyleSheet(DROP_ZONE_STYLE.format(color="#606060", background="transparent"))

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
            self.set_targeted(True)
        else:
            event.ignore()

    def dragLeaveEvent(self, event):
        self.set_targeted(False)

    def dropEvent(self, event):
        self.set_targeted(False)
        paths = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        event.acceptProposedAction()
        self.files_dropped.emit(paths)


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, session: ConversionSession, message_log: logs.MessageLog):
        super().__init__()
        self.session = session
        self.message_log = message_log
        self.conversion_worker: Optional[ConversionWorker] = None
        self.batch_active = False
        self.settings_store = QSettings(APP_ORG, APP_NAME)
        self.last_update_time = 0

        self.log_bridge = LogBridge()
        self.log_bridge.message.connect(self.append_log)
        self.message_log.add_listener(self.log_bridge.forward)

        self.init_ui()
        self.load_preferences()
        self.refresh_queue()

    def init_ui(self):
        """Initialize the user interface."""
        self.setWindowTitle(APP_NAME)
        self.setMinimumSize(640, 860)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)
        main_layout.setSpacing(12)
        main_layout.setContentsMargins(16, 16, 16, 16)

        # Drop area and folder scan
        self.drop_zone = DropZone()
        self.drop_zone.files_dropped.connect(self.on_files_dropped)
        main_layout.addWidget(self.drop_zone)

        scan_row = QHBoxLayout()
        self.scan_btn = QPushButton("Add images from folder…")
        self.scan_btn.clicked.connect(self.browse_source_folder)
        scan_row.addWidget(self.scan_btn)
        self.subfolder_check = QCheckBox("Include subfolders")
        self.subfolder_check.toggled.connect(self.on_scan_subfolders_toggled)
        scan_row.addWidget(self.subfolder_check)
        self.last_folder_label = QLabel("")
        self.last_folder_label.setStyleSheet("color: #888888;")
        scan_row.addWidget(self.last_folder_label, 1)
        main_layout.addLayout(scan_row)

        # Queue
        queue_group = QGroupBox("Queue")
        queue_layout = QHBoxLayout(queue_group)

        self.queue_table = QTableWidget(0, 7)
        self.queue_table.setHorizontalHeaderLabels(
            ["Name", "Size", "Est. Savings", "Actual Savings", "Final Size", "Status", ""]
        )
        self.queue_table.verticalHeader().setVisible(False)
        self.queue_table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.queue_table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.queue_table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        header = self.queue_table.horizontalHeader()
        header.setSectionResizeMode(0, QHeaderView.ResizeMode.Stretch)
        for column in range(1, 7):
            header.setSectionResizeMode(column, QHeaderView.ResizeMode.ResizeToContents)
        self.queue_table.itemSelectionChanged.connect(self.on_queue_selection_changed)
        queue_layout.addWidget(self.queue_table, 1)

        side_layout = QVBoxLayout()
        self.preview_label = QLabel("No preview")
        self.preview_label.setFixedSize(PREVIEW_SIZE, PREVIEW_SIZE)
        self.preview_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.preview_label.setStyleSheet("background-color: #000000; border-radius: 6px; color: #666666;")
        side_layout.addWidget(self.preview_label)
        self.clear_btn = QPushButton("Clear")
        self.clear_btn.clicked.connect(self.clear_queue)
        side_layout.addWidget(self.clear_btn)
        side_layout.addStretch(1)
        queue_layout.addLayout(side_layout)

        main_layout.addWidget(queue_group, 1)

        # Output location
        output_group = QGroupBox("Output")
        output_layout = QVBoxLayout(output_group)

        toggles_row = QHBoxLayout()
        self.next_to_original_check = QCheckBox("Save next to original image")
        self.next_to_original_check.toggled.connect(self.on_output_policy_changed)
        toggles_row.addWidget(self.next_to_original_check)
        self.skip_existing_check = QCheckBox("Skip .webp files")
        self.skip_existing_check.toggled.connect(self.on_skip_existing_toggled)
        toggles_row.addWidget(self.skip_existing_check)
        self.preserve_structure_check = QCheckBox("Preserve folder structure")
        self.preserve_structure_check.toggled.connect(self.on_output_policy_changed)
        toggles_row.addWidget(self.preserve_structure_check)
        toggles_row.addStretch(1)
        output_layout.addLayout(toggles_row)

        dest_row = QHBoxLayout()
        self.dest_btn = QPushButton("Select destination…")
        self.dest_btn.clicked.connect(self.choose_output_folder)
        dest_row.addWidget(self.dest_btn)
        self.auto_subfolder_check = QCheckBox("Place converted files in a \"WebP output\" subfolder")
        self.auto_subfolder_check.toggled.connect(self.on_output_policy_changed)
        dest_row.addWidget(self.auto_subfolder_check)
        dest_row.addStretch(1)
        output_layout.addLayout(dest_row)

        self.output_label = QLabel("")
        self.output_label.setStyleSheet("color: #888888;")
        output_layout.addWidget(self.output_label)

        main_layout.addWidget(output_group)

        # Compression
        compression_group = QGroupBox("Compression")
        compression_layout = QVBoxLayout(compression_group)

        mode_row = QHBoxLayout()
        mode_row.addWidget(QLabel("Mode:"))
        self.mode_combo = QComboBox()
        self.mode_combo.addItems(["Lossy", "Lossless"])
        self.mode_combo.setToolTip(
            "Lossy: uses the quality setting to reduce file size (best for photos).\n"
            "Lossless: preserves all details, usually larger files (best for flat graphics and logos)."
        )
        self.mode_combo.currentIndexChanged.connect(self.on_mode_changed)
        mode_row.addWidget(self.mode_combo)
        mode_row.addSpacing(20)
        mode_row.addWidget(QLabel("Preset:"))
        self.preset_combo = QComboBox()
        for preset in QualityPreset:
            self.preset_combo.addItem(preset.value, preset)
        self.preset_combo.currentIndexChanged.connect(self.on_preset_changed)
        mode_row.addWidget(self.preset_combo)
        mode_row.addStretch(1)
        compression_layout.addLayout(mode_row)

        quality_row = QHBoxLayout()
        quality_row.addWidget(QLabel("Quality:"))
        self.quality_slider = QSlider(Qt.Orientation.Horizontal)
        self.quality_slider.setRange(0, 100)
        self.quality_slider.setToolTip("0 = smallest files, 100 = highest fidelity")
        self.quality_slider.valueChanged.connect(self.on_quality_value_changed)
        quality_row.addWidget(self.quality_slider, 1)
        self.quality_spin = QSpinBox()
        self.quality_spin.setRange(0, 100)
        self.quality_spin.valueChanged.connect(self.quality_slider.setValue)
        quality_row.addWidget(self.quality_spin)
        compression_layout.addLayout(quality_row)

        main_layout.addWidget(compression_group)

        # Progress & Action
        action_row = QHBoxLayout()
        self.savings_label = QLabel("")
        self.savings_label.setStyleSheet("color: #888888;")
        action_row.addWidget(self.savings_label, 1)
        self.delete_original_check = QCheckBox("Move originals to Trash")
        self.delete_original_check.toggled.connect(self.on_output_policy_changed)
        action_row.addWidget(self.delete_original_check)
        self.start_btn = QPushButton("Convert")
        self.start_btn.setProperty("class", "primary")
        self.start_btn.setMinimumHeight(38)
        self.start_btn.clicked.connect(self.start_conversion)
        action_row.addWidget(self.start_btn)
        main_layout.addLayout(action_row)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        self.progress_bar.setVisible(False)
        main_layout.addWidget(self.progress_bar)
        self.progress_label = QLabel("")
        self.progress_label.setStyleSheet("color: #888888;")
        self.progress_label.setVisible(False)
        main_layout.addWidget(self.progress_label)

        main_layout.addWidget(QLabel("Log"))
        self.log_view = QPlainTextEdit()
        self.log_view.setReadOnly(True)
        self.log_view.setMaximumBlockCount(self.message_log.limit)
        self.log_view.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self.log_view.setMinimumHeight(120)
        for message in self.message_log.messages:
            self.log_view.appendPlainText(message)
        main_layout.addWidget(self.log_view)

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def load_preferences(self):
        """Restore controls from QSettings and push them into the session."""
        store = self.settings_store
        quality = store.value("quality", self.session.settings.quality, type=int)
        lossless = store.value("lossless", False, type=bool)
        custom_folder = store.value("custom_folder", "", type=str)

        policy = self.session.policy
        policy.save_next_to_original = store.value("save_next_to_original", True, type=bool)
        policy.skip_existing_output = store.value("skip_existing_output", True, type=bool)
        policy.preserve_structure = store.value("preserve_structure", False, type=bool)
        policy.auto_subfolder = store.value("auto_subfolder", True, type=bool)
        policy.delete_original_on_success = store.value("delete_original_on_success", False, type=bool)
        policy.custom_folder = Path(custom_folder) if custom_folder else None
        self.session.scan_subfolders = store.value("scan_subfolders", False, type=bool)
        self.session.update_settings(CompressionSettings(lossless=lossless, quality=quality))
        self.session.preset = QualityPreset.for_quality(quality)

        widgets = [
            self.next_to_original_check, self.skip_existing_check, self.preserve_structure_check,
            self.auto_subfolder_check, self.delete_original_check, self.subfolder_check,
            self.mode_combo, self.preset_combo, self.quality_slider, self.quality_spin,
        ]
        for widget in widgets:
            widget.blockSignals(True)
        self.next_to_original_check.setChecked(policy.save_next_to_original)
        self.skip_existing_check.setChecked(policy.skip_existing_output)
        self.preserve_structure_check.setChecked(policy.preserve_structure)
        self.auto_subfolder_check.setChecked(policy.auto_subfolder)
        self.delete_original_check.setChecked(policy.delete_original_on_success)
        self.subfolder_check.setChecked(self.session.scan_subfolders)
        self.mode_combo.setCurrentIndex(1 if lossless else 0)
        self.preset_combo.setCurrentIndex(self.preset_combo.findData(self.session.preset))
        self.quality_slider.setValue(quality)
        self.quality_spin.setValue(quality)
        for widget in widgets:
            widget.blockSignals(False)

        self.update_control_states()

    def save_preferences(self):
        """Persist the current controls (never the queue)."""
        store = self.settings_store
        policy = self.session.policy
        store.setValue("quality", self.quality_slider.value())
        store.setValue("lossless", self.session.settings.lossless)
        store.setValue("save_next_to_original", policy.save_next_to_original)
        store.setValue("skip_existing_output", policy.skip_existing_output)
        store.setValue("preserve_structure", policy.preserve_structure)
        store.setValue("auto_subfolder", policy.auto_subfolder)
        store.setValue("delete_original_on_success", policy.delete_original_on_success)
        store.setValue("custom_folder", str(policy.custom_folder) if policy.custom_folder else "")
        store.setValue("scan_subfolders", self.session.scan_subfolders)

    def closeEvent(self, event):
        if self.conversion_worker is not None and self.conversion_worker.isRunning():
            QMessageBox.warning(self, "Conversion running",
                                "Please wait for the current batch to finish before quitting.")
            event.ignore()
            return
        self.save_preferences()
        self.message_log.remove_listener(self.log_bridge.forward)
        super().closeEvent(event)

    # -------------------------------------------------------------------------
    # Adding files
    # -------------------------------------------------------------------------

    def on_files_dropped(self, paths: list):
        """Handle items dropped on the drop zone."""
        if not paths:
            logger.warning("Unsupported drop.")
            return
        self.session.add_paths(paths)
        self.refresh_queue()

    def browse_source_folder(self):
        """Open dialog to pick a folder to scan."""
        start_dir = str(self.session.policy.last_scanned_folder or "")
        folder = QFileDialog.getExistingDirectory(self, "Add Images From Folder", start_dir)
        if folder:
            logger.info(
                f"Scanning folder: {folder} "
                f"(include subfolders: {'yes' if self.session.scan_subfolders else 'no'})"
            )
            self.session.scan_folder(folder)
            self.refresh_queue()

    def on_scan_subfolders_toggled(self, checked: bool):
        self.session.scan_subfolders = checked
        self.update_control_states()

    # -------------------------------------------------------------------------
    # Queue display
    # -------------------------------------------------------------------------

    def is_busy(self) -> bool:
        """True from worker start until the batch has fully finished."""
        return self.batch_active or self.session.is_converting

    def refresh_queue(self):
        """Rebuild the queue table from the session's queue store."""
        entries = self.session.store.snapshot()
        converting = self.is_busy()

        self.queue_table.setRowCount(len(entries))
        for row, (path, info) in enumerate(entries):
            status = info.status if info is not None else ConversionStatus.PENDING
            cells = [
                path.name,
                SizeEstimator.format_size(info.original_size) if info else "—",
                SizeEstimator.format_percent(SizeEstimator.estimated_savings_percent(info)) if info else "—",
                SizeEstimator.format_percent(SizeEstimator.actual_savings_percent(info)) if info else "—",
                SizeEstimator.format_size(info.actual_output_size)
                if info and status in (ConversionStatus.CONVERTED, ConversionStatus.SKIPPED) else "—",
                status.label,
            ]
            for column, text in enumerate(cells):
                item = QTableWidgetItem(text)
                if column == 0:
                    item.setData(Qt.ItemDataRole.UserRole, str(path))
                    item.setToolTip(info.error if info and info.error else str(path))
                elif column < 5:
                    item.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
                else:
                    item.setForeground(QColor(STATUS_COLORS[status]))
                self.queue_table.setItem(row, column, item)

            remove_btn = QPushButton("✕")
            remove_btn.setToolTip("Remove from queue")
            remove_btn.setEnabled(not converting)
            remove_btn.clicked.connect(lambda _checked=False, p=path: self.remove_entry(p))
            self.queue_table.setCellWidget(row, 6, remove_btn)

        pending = len(self.session.store.pending_paths())
        self.start_btn.setText(f"Convert {pending} file(s)")
        self.start_btn.setEnabled(pending > 0 and not converting)
        self.clear_btn.setEnabled(bool(entries) and not converting)
        self.savings_label.setText(self.session.savings_line() or "")

        last_folder = self.session.policy.last_scanned_folder
        self.last_folder_label.setText(f"Last folder: {last_folder.name}" if last_folder else "")

    def remove_entry(self, path: Path):
        try:
            self.session.remove(path)
        except QueueBusyError as e:
            logger.warning(str(e))
        self.refresh_queue()

    def clear_queue(self):
        try:
            self.session.clear()
        except QueueBusyError as e:
            logger.warning(str(e))
            self.refresh_queue()
            return
        self.preview_label.clear()
        self.preview_label.setText("No preview")
        self.refresh_queue()

    def on_queue_selection_changed(self):
        """Show a thumbnail of the selected queue entry."""
        rows = self.queue_table.selectionModel().selectedRows()
        if not rows:
            return
        item = self.queue_table.item(rows[0].row(), 0)
        if item is None:
            return
        self.load_preview_image(Path(item.data(Qt.ItemDataRole.UserRole)))

    def load_preview_image(self, file_path: Path):
        """Load a thumbnail of an image for preview."""
        try:
            with Image.open(file_path) as img:
                img = ImageOps.exif_transpose(img)
                img.thumbnail((PREVIEW_SIZE, PREVIEW_SIZE))
                if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
                    img = img.convert('RGBA')
                elif img.mode != 'RGB':
                    img = img.convert('RGB')
                self.preview_label.setPixmap(self.pil_to_pixmap(img))
        except Exception as e:
            logger.debug(f"No preview for {file_path}: {e}")
            self.preview_label.clear()
            self.preview_label.setText("No preview")

    def pil_to_pixmap(self, pil_image: Image.Image) -> QPixmap:
        """Convert a PIL Image to QPixmap."""
        if pil_image.mode == 'RGBA':
            qimage_format = QImage.Format.Format_RGBA8888
            raw_mode = 'RGBA'
        else:
            qimage_format = QImage.Format.Format_RGB888
            raw_mode = 'RGB'

        data = pil_image.tobytes('raw', raw_mode)
        bytes_per_line = len(data) // pil_image.height
        qimage = QImage(data, pil_image.width, pil_image.height, bytes_per_line, qimage_format)

        # Copy so the pixmap does not reference the temporary buffer
        return QPixmap.fromImage(qimage.copy())

    # -------------------------------------------------------------------------
    # Settings and policy
    # -------------------------------------------------------------------------

    def on_quality_value_changed(self, value: int):
        """Manual quality change: switches the preset to Custom."""
        self.quality_spin.blockSignals(True)
        self.quality_spin.setValue(value)
        self.quality_spin.blockSignals(False)

        self.session.set_quality(value)
        self.preset_combo.blockSignals(True)
        self.preset_combo.setCurrentIndex(self.preset_combo.findData(QualityPreset.CUSTOM))
        self.preset_combo.blockSignals(False)
        self.refresh_queue()

    def on_preset_changed(self, index: int):
        preset = self.preset_combo.itemData(index)
        self.session.apply_preset(preset)
        if preset.quality is not None:
            for widget in (self.quality_slider, self.quality_spin):
                widget.blockSignals(True)
                widget.setValue(preset.quality)
                widget.blockSignals(False)
        self.refresh_queue()

    def on_mode_changed(self, index: int):
        self.session.set_lossless(index == 1)
        self.update_control_states()
        self.refresh_queue()

    def on_skip_existing_toggled(self, checked: bool):
        try:
            self.session.set_skip_existing(checked)
        except QueueBusyError as e:
            logger.warning(str(e))
            self.skip_existing_check.blockSignals(True)
            self.skip_existing_check.setChecked(not checked)
            self.skip_existing_check.blockSignals(False)
        self.refresh_queue()

    def on_output_policy_changed(self, *_args):
        policy = self.session.policy
        policy.save_next_to_original = self.next_to_original_check.isChecked()
        policy.preserve_structure = self.preserve_structure_check.isChecked()
        policy.auto_subfolder = self.auto_subfolder_check.isChecked()
        policy.delete_original_on_success = self.delete_original_check.isChecked()
        self.update_control_states()

    def choose_output_folder(self):
        """Open dialog to select destination folder."""
        start_dir = str(self.session.policy.custom_folder or "")
        folder = QFileDialog.getExistingDirectory(self, "Select Output Folder", start_dir)
        if folder:
            self.session.policy.custom_folder = Path(folder)
            self.update_control_states()

    def update_control_states(self):
        """Enable controls that apply to the current options."""
        policy = self.session.policy
        converting = self.is_busy()
        lossless = self.session.settings.lossless

        self.next_to_original_check.setEnabled(not converting)
        self.skip_existing_check.setEnabled(not converting)
        self.dest_btn.setEnabled(not policy.save_next_to_original and not converting)
        self.auto_subfolder_check.setEnabled(not policy.save_next_to_original and not converting)
        self.preserve_structure_check.setEnabled(
            not policy.save_next_to_original and self.session.scan_subfolders and not converting
        )
        self.quality_slider.setEnabled(not lossless)
        self.quality_spin.setEnabled(not lossless)
        self.preset_combo.setEnabled(not lossless)
        self.delete_original_check.setEnabled(not converting)
        self.output_label.setText(self.session.output_description())

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def start_conversion(self):
        """Start the batch conversion process."""
        if self.is_busy():
            return
        if not self.session.store.pending_paths():
            logger.info("No files in queue.")
            return

        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(True)
        self.progress_label.setText("Starting conversion...")
        self.progress_label.setVisible(True)
        self.last_update_time = 0

        self.batch_active = True
        self.conversion_worker = ConversionWorker(self.session, self)
        self.conversion_worker.progress_updated.connect(self.on_progress_updated)
        self.conversion_worker.conversion_complete.connect(self.on_conversion_complete)
        self.conversion_worker.error_occurred.connect(self.on_error)
        self.conversion_worker.start()
        self.refresh_queue()
        self.update_control_states()

    def on_progress_updated(self, current: int, total: int, current_file: str):
        """Handle progress updates from the worker thread."""
        current_time = time.time()

        # Throttle table rebuilds, but always show the final update
        if current == total or (current_time - self.last_update_time) >= 0.05:
            self.progress_bar.setValue(int((current / total) * 100) if total else 100)
            self.progress_label.setText(f"Converting: {current} of {total}    {current_file}")
            self.refresh_queue()
            self.update_control_states()
            self.last_update_time = current_time

    def on_conversion_complete(self, summary: BatchSummary):
        """Handle completion of the conversion process."""
        self.batch_active = False
        self.progress_bar.setValue(100)
        self.progress_bar.setVisible(False)
        self.progress_label.setVisible(False)
        self.refresh_queue()
        self.update_control_states()

    def on_error(self, error_message: str):
        """Handle errors from the worker thread."""
        self.batch_active = False
        self.progress_bar.setVisible(False)
        self.progress_label.setVisible(False)
        self.refresh_queue()
        self.update_control_states()
        QMessageBox.critical(self, "Error", error_message)

    def append_log(self, message: str):
        self.log_view.appendPlainText(message)
        scrollbar = self.log_view.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())


def main():
    """Application entry point."""
    config = load_config()
    logs.configure(config.log_level)
    message_log = logs.MessageLog().attach()

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORG)
    app.setStyle('Fusion')
    app.setStyleSheet(DARK_THEME_STYLESHEET)

    session = ConversionSession.from_config(config, policy=OutputPolicy())

    window = MainWindow(session, message_log)
    window.show()

    sys.exit(app.exec())


if __name__ == '__main__':
    main()

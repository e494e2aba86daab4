"""
Unicode fonts for generated PDFs. The core PDF fonts only cover Latin-1,
so names with Yoruba, Igbo or Hausa diacritics are drawn with DejaVu Sans,
which ships with matplotlib.
"""
import os

import matplotlib

FONT_FAMILY = 'DejaVu'

FONT_FILES = {
    '': 'DejaVuSans.ttf',
    'B': 'DejaVuSans-Bold.ttf',
    'I': 'DejaVuSans-Oblique.ttf',
    'BI': 'DejaVuSans-BoldOblique.ttf',
}


def font_path(style=''):
    return os.path.join(matplotlib.get_data_path(), 'fonts', 'ttf', FONT_FILES[style])


def register_fonts(pdf):
    """Add every DejaVu style to an FPDF document"""
    for style in FONT_FILES:
        pdf.add_font(FONT_FAMILY, style, font_path(style))

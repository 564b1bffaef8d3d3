import io
from typing import List

from PIL import Image, ImageDraw

from app.schemas import RegionImportance

# heatmap regions laid out as a 2 x 5 grid over the image
GRID_ROWS = 2
GRID_COLS = 5


def _heat_color(importance: float, alpha: int = 110):
    t = max(0.0, min(100.0, importance)) / 100.0
    # blue (low) -> red (high)
    return (int(255 * t), 40, int(255 * (1 - t)), alpha)


def draw_heatmap_grid(pil_img: Image.Image, heatmap: List[RegionImportance]) -> Image.Image:
    base = pil_img.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    w, h = base.size
    cell_w = w / GRID_COLS
    cell_h = h / GRID_ROWS

    for i, region in enumerate(heatmap[: GRID_ROWS * GRID_COLS]):
        r, c = divmod(i, GRID_COLS)
        x1, y1 = c * cell_w, r * cell_h
        x2, y2 = x1 + cell_w, y1 + cell_h
        draw.rectangle([x1, y1, x2, y2], fill=_heat_color(region.importance), outline=(255, 255, 255, 160), width=1)
        draw.text((x1 + 4, y1 + 4), f"{i + 1}:{region.importance:.0f}", fill=(255, 255, 255, 255))

    return Image.alpha_composite(base, overlay).convert("RGB")


def pil_to_png_bytes(pil_img: Image.Image) -> bytes:
    buf = io.BytesIO()
    pil_img.save(buf, format="PNG")
    return buf.getvalue()

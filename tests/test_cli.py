# tests/test_cli.py
import subprocess
import sys
from pathlib import Path
from PIL import Image, ImageDraw

REPO_ROOT = Path(__file__).resolve().parent.parent
CLI = str(REPO_ROOT / "medcutgen.py")


def create_dummy_image(path: Path, background=(150, 120, 200)):
    img = Image.new("RGB", (256, 256), color=background)
    draw = ImageDraw.Draw(img)
    draw.rectangle([(50, 50), (150, 150)], fill=(200, 50, 50))
    draw.ellipse([(100, 100), (200, 200)], fill=(50, 200, 50))
    img.save(path)


def run_cli(*args, env=None):
    return subprocess.run(
        [sys.executable, CLI, *args],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
        env=env,
    )


def test_medcutgen_cli_writes_outputs(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    output_dir = tmp_path / "output"

    result = run_cli(str(input_image), str(output_dir), "--num-colors", "3")

    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    for filename in ["dummy_input-quantized.png", "dummy_input-palette_legend.png"]:
        assert (output_dir / filename).exists(), f"Expected output file not found: {filename}"
    assert "Completed" in result.stdout

    with Image.open(output_dir / "dummy_input-quantized.png") as im:
        assert im.mode == "P"
        assert len(set(im.getdata())) == 3


def test_medcutgen_cli_refuses_to_clobber(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)
    output_dir = tmp_path / "output"

    assert run_cli(str(input_image), str(output_dir), "--preset", "cga").returncode == 0
    again = run_cli(str(input_image), str(output_dir), "--preset", "cga")
    assert again.returncode == 1
    assert "already exist" in again.stdout
    assert run_cli(str(input_image), str(output_dir), "--preset", "cga", "-y").returncode == 0


def test_medcutgen_cli_shared_palette(tmp_path):
    first = tmp_path / "first.png"
    second = tmp_path / "second.png"
    create_dummy_image(first)
    create_dummy_image(second, background=(10, 10, 10))
    output_dir = tmp_path / "output"

    result = run_cli(str(first), str(second), str(output_dir), "--shared-palette", "--skip-legend")

    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert (output_dir / "first-quantized.png").exists()
    assert (output_dir / "second-quantized.png").exists()
    assert not (output_dir / "shared-palette_legend.png").exists()
    assert "Palette 'shared': 4 of 256" in result.stdout


def test_medcutgen_cli_unknown_preset(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), str(tmp_path / "out"), "--preset", "vga")
    assert result.returncode == 1


def test_medcutgen_cli_help_output():
    result = run_cli("--help")
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()


def test_medcutgen_cli_requires_output_directory(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image))
    assert result.returncode != 0

    help_result = run_cli("--help")
    assert "OUTPUT_DIRECTORY" in help_result.stdout

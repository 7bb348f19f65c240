# pipeline.py
# ---------------------
# RAW 转换主流程控制器（Pipeline）
# 两遍处理：
#   Pass 1: 线性化 → 去马赛克 → sensor→xyY，同时累加亮度直方图
#   Pass 2: 去噪/锐化/均衡 → xyY→sRGB(含 tonemap) → 对比度/饱和度 → 打包 RGBA
# Pass 2 会读取最远 35 像素外的邻居并依赖最终直方图，所以两遍之间是全图屏障。

import glob
import os

import numpy as np
import yaml

from raw_loader.raw_reader import read_gain_map, read_raw
from stages import blc, color_space, demosaic, denoise, tone_curve
from stages.histogram import HistogramAccumulator
from utils.calibration import Calibration, PostProcessSettings
from utils.dispatch import DEFAULT_ROWS_PER_TASK, parallel_for
from utils.image_io import pack_rgba8888, save_image, save_image_debug


def log_data_range(img, step_name):
    """监控数据范围，帮助调试"""
    print(f"→ {step_name}: 范围[{img.min():.3f}, {img.max():.3f}], "
          f"均值{img.mean():.3f}, "
          f"99%分位数{np.percentile(img, 99):.3f}")


class ConversionContext:
    """一次转换中只读的全部参数：标定、后处理、RAW 尺寸、输出子区域、调度设置"""

    def __init__(self, calibration, settings, raw_width, raw_height,
                 offset_x=0, offset_y=0, out_width=None, out_height=None,
                 rows_per_task=DEFAULT_ROWS_PER_TASK, max_workers=None):
        self.calibration = calibration
        self.settings = settings
        self.raw_width = int(raw_width)
        self.raw_height = int(raw_height)
        self.offset_x = int(offset_x)
        self.offset_y = int(offset_y)
        self.out_width = self.raw_width - self.offset_x if out_width is None else int(out_width)
        self.out_height = self.raw_height - self.offset_y if out_height is None else int(out_height)
        self.rows_per_task = rows_per_task
        self.max_workers = max_workers

        # 3x3 窗口至少需要 3x3 的图
        if self.raw_width < 3 or self.raw_height < 3:
            raise ValueError(f"RAW 尺寸至少 3x3，得到 {self.raw_width}x{self.raw_height}")

        if (self.offset_x < 0 or self.offset_y < 0 or self.out_width <= 0 or self.out_height <= 0
                or self.offset_x + self.out_width > self.raw_width
                or self.offset_y + self.out_height > self.raw_height):
            raise ValueError(
                f"输出区域 offset=({self.offset_x}, {self.offset_y}) "
                f"size=({self.out_width}, {self.out_height}) 超出 RAW "
                f"{self.raw_width}x{self.raw_height}"
            )

    @classmethod
    def from_config(cls, cfg, gain_map=None):
        raw_cfg = cfg['raw']
        out_cfg = cfg.get('output', {})
        dispatch_cfg = cfg.get('dispatch', {})

        offset = out_cfg.get('offset', [0, 0])
        size = out_cfg.get('size') or [None, None]

        return cls(
            calibration=Calibration.from_config(cfg.get('calibration', {}), gain_map=gain_map),
            settings=PostProcessSettings.from_config(cfg.get('postprocess', {})),
            raw_width=raw_cfg['width'],
            raw_height=raw_cfg['height'],
            offset_x=offset[0],
            offset_y=offset[1],
            out_width=size[0],
            out_height=size[1],
            rows_per_task=dispatch_cfg.get('rows_per_task', DEFAULT_ROWS_PER_TASK),
            max_workers=dispatch_cfg.get('max_workers'),
        )


def convert_raw_to_intermediate(xs, ys, raw, context, histogram):
    """Pass 1 kernel：RAW 坐标 → xyY 像素，并把亮度计入直方图"""
    # 边缘像素复用最近的内部像素
    xs, ys = demosaic.clamp_coordinates(xs, ys, context.raw_width, context.raw_height)

    patch = blc.apply(raw, xs, ys, context)
    sensor = demosaic.apply(patch, xs, ys, context)
    intermediate = color_space.sensor_to_intermediate(sensor, context)

    histogram.add(intermediate[..., 2])
    return intermediate


def convert_intermediate_to_rgba(xs, ys, intermediate, context, remap):
    """Pass 2 kernel：输出坐标 → RGBA8888"""
    xs = np.asarray(xs) + context.offset_x
    ys = np.asarray(ys) + context.offset_y

    px = denoise.apply(intermediate, xs, ys, context, remap)
    srgb = color_space.intermediate_to_srgb(px, context)
    srgb = tone_curve.apply(srgb, context.settings)
    return pack_rgba8888(srgb)


class RawConverter:
    """
    两阶段转换对象。

    run_pass1 → build_remap → run_pass2 必须按顺序调用；convert 一次做完。
    """

    def __init__(self, context):
        self.context = context
        self.histogram = None
        self.intermediate = None
        self.remap = None

    def run_pass1(self, raw):
        ctx = self.context
        raw = np.asarray(raw)
        if raw.shape != (ctx.raw_height, ctx.raw_width):
            raise ValueError(f"RAW 形状 {raw.shape} 与配置 ({ctx.raw_height}, {ctx.raw_width}) 不一致")

        self.histogram = HistogramAccumulator()
        self.remap = None
        self.intermediate = parallel_for(
            lambda xs, ys: convert_raw_to_intermediate(xs, ys, raw, ctx, self.histogram),
            ctx.raw_width, ctx.raw_height, channels=3,
            rows_per_task=ctx.rows_per_task, max_workers=ctx.max_workers,
        )
        log_data_range(self.intermediate[..., 2], "Pass 1 亮度 Y")
        return self.intermediate

    def build_remap(self):
        if self.intermediate is None:
            raise RuntimeError("必须先完成 Pass 1 才能生成 remap 表")
        ctx = self.context
        self.remap = self.histogram.build_remap(ctx.raw_width * ctx.raw_height)
        return self.remap

    def run_pass2(self):
        if self.remap is None:
            raise RuntimeError("Pass 2 之前必须完成 Pass 1 并生成 remap 表")

        ctx = self.context
        intermediate, remap = self.intermediate, self.remap
        rgba = parallel_for(
            lambda xs, ys: convert_intermediate_to_rgba(xs, ys, intermediate, ctx, remap),
            ctx.out_width, ctx.out_height, channels=4, dtype=np.uint8,
            rows_per_task=ctx.rows_per_task, max_workers=ctx.max_workers,
        )
        log_data_range(rgba[..., :3], "Pass 2 输出 RGB")
        return rgba

    def convert(self, raw):
        self.run_pass1(raw)
        self.build_remap()
        return self.run_pass2()


class RawPipeline:
    def __init__(self, config_file):
        with open(config_file, encoding="utf-8") as f:
            self.config = yaml.safe_load(f)

        self.gain_map = read_gain_map(self.config.get('gain_map'))

    def run(self):
        cfg = self.config

        input_dir = cfg['raw'].get('input_dir')
        output_dir = cfg.get('output', {}).get('output_dir', 'output/results/')
        debug_dir = cfg.get('output', {}).get('debug_dir')

        if not input_dir:
            raise ValueError("config.yaml 中 'raw' 部分必须指定 'input_dir' 用于批量处理。")

        os.makedirs(output_dir, exist_ok=True)
        if debug_dir:
            os.makedirs(debug_dir, exist_ok=True)

        raw_files = sorted(glob.glob(os.path.join(input_dir, "*.raw")))
        if not raw_files:
            print(f"警告: 在目录 '{input_dir}' 中未找到任何 .raw 文件。请检查路径和文件后缀。")
            return []

        print(f"在 '{input_dir}' 中找到 {len(raw_files)} 个 RAW 文件进行处理。")

        context = ConversionContext.from_config(cfg, gain_map=self.gain_map)
        outputs = []
        for raw_file_path in raw_files:
            file_name = os.path.splitext(os.path.basename(raw_file_path))[0]
            print(f"\n--- 开始处理文件: {file_name} ---")

            raw_cfg = cfg['raw'].copy()  # 复制一份，避免修改全局配置
            raw_cfg['path'] = raw_file_path
            raw = read_raw(raw_cfg)
            print(f"图像尺寸：{raw.shape}, 范围 [{raw.min()}, {raw.max()}]")

            converter = RawConverter(context)
            rgba = converter.convert(raw)

            # 中间 xyY 亮度，便于排查
            if debug_dir:
                save_image_debug(converter.intermediate[..., 2],
                                 os.path.join(debug_dir, f"{file_name}_intermediate_Y.png"), scale=True)

            output_path = os.path.join(output_dir, f"{file_name}_processed.png")
            save_image(rgba, output_path)
            outputs.append(output_path)
            print(f"✅ 文件 '{file_name}' 处理完成，输出已保存至：{output_path}")

        print("\n--- 所有文件处理完毕 ---")
        return outputs

# 文件：main.py
# ---------------------
# 主程序入口：加载 config.yaml，执行 RAW 转换流程
import sys

from pipeline import RawPipeline


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    config_file = argv[0] if argv else "config.yaml"

    print(f"main 启动中... 配置文件: {config_file}")
    RawPipeline(config_file).run()


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
# setup.py：安装 git-fleet 命令行工具
#
# 安装方式：
#   pip install -e .
#   pip install -e ".[test]"   # 包含测试依赖
#
# 启动方式：
#   gf status

from setuptools import setup, find_packages

# 读取 README.md 作为长描述
try:
    with open("README.md", "r", encoding="utf-8") as fh:
        long_description = fh.read()
except FileNotFoundError:
    long_description = "Run one git or shell command across groups of local repositories"

setup(
    name="git-fleet",
    version="1.0.0",
    description="Run one git or shell command across groups of local repositories",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=["main"],
    packages=find_packages("src"),
    package_dir={"git_fleet": "src/git_fleet"},
    python_requires=">=3.8",
    install_requires=[
        "colorama>=0.4.6",  # 终端颜色（Windows 控制台支持）
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["gf=main:main"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Version Control :: Git",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)

#!/usr/bin/python
from setuptools import setup, find_namespace_packages

setup(
      name='seashell',
      version='0.1.0',
      description='SSH client with scoped server configuration and pattern aliases',
      author='seashell developers',
      license='MIT',
      packages=find_namespace_packages(include=["seashell", "seashell.*"]),
      include_package_data=True,
      zip_safe=False,
      # 安装依赖的其他包
      install_requires = [
        "asyncssh>=2.13",
        "click>=8.0",
        "Jinja2",
        "marshmallow>=3.18,<4",
        "marshmallow-dataclass>=8.5",
        "PyYAML",
        "rich",
      ],
      extras_require={
        "test": ["pytest"],
      },
    # 安装后，命令行执行 `key` 相当于调用 `value`: 中的 :`value` 方法
    entry_points={
        'console_scripts':[
            'seashell = seashell.__main__:main'
        ]
    },
    python_requires='>=3.8'
)

from setuptools import find_packages, setup

package_name = "cop_slam"

setup(
    name="cop-slam",
    version="0.1.0",
    packages=find_packages(exclude=["test", "test.*"]),
    data_files=[
        (
            "share/" + package_name + "/config",
            [
                "config/cop_slam_base.yaml",
            ],
        ),
        (
            "share/" + package_name + "/config/presets",
            [
                "config/presets/twopass.yaml",
                "config/presets/twopass_sim3.yaml",
            ],
        ),
    ],
    python_requires=">=3.10",
    install_requires=["setuptools", "numpy", "scipy", "pyyaml", "pydantic>=2"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="you",
    maintainer_email="you@example.com",
    description="Closed-form loop-closure correction of pose chains (COP-SLAM)",
    license="GPL-3.0-or-later",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "cop_slam_run = cop_slam.cli:main",
        ],
    },
)

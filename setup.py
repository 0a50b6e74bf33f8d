#!/usr/bin/env python
"""Installation script for Hyperion."""
import os

from setuptools import setup

repo_root = os.path.dirname(os.path.abspath(__file__))

with open("tests/requirements.txt") as f:
    tests_require = f.readlines()

packages = [  # Packages must be sorted alphabetically to ease maintenance and merges.
    "hyperion.algo",
    "hyperion.core",
    "hyperion.core.io",
    "hyperion.core.utils",
    "hyperion.core.worker",
    "hyperion.executor",
    "hyperion.testing",
]

extras_require = {
    "test": tests_require,
}

setup_args = dict(
    name="hyperion",
    version="0.1.0",
    description="Distributed random search of hyperparameters",
    long_description=open(
        os.path.join(repo_root, "README.rst"), encoding="utf8"
    ).read(),
    license="BSD-3-Clause",
    author="Epistímio",
    packages=packages,
    package_dir={"": "src"},
    include_package_data=True,
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "hyperion-slave = hyperion.core.worker.slave:main",
        ],
        "BaseExecutor": [
            "singleexecutor = hyperion.executor.single_backend:SingleExecutor",
            "poolexecutor = hyperion.executor.pool_backend:PoolExecutor",
            "qsubexecutor = hyperion.executor.job_queue_backend:QSubExecutor",
            "subprocessjobexecutor = hyperion.executor.job_queue_backend:SubprocessJobExecutor",
            "sshexecutor = hyperion.executor.ssh_backend:SSHExecutor",
        ],
        "HyperparameterMain": [
            "quadratic = hyperion.testing:Quadratic",
        ],
    },
    install_requires=[
        "cloudpickle",
        "PyYAML",
        "numpy",
        "scipy",
        "filelock",
        "tabulate",
        "AppDirs",
    ],
    tests_require=tests_require,
    extras_require=extras_require,
    zip_safe=False,
)

setup_args["keywords"] = [
    "Machine Learning",
    "Hyperparameter Search",
    "Distributed",
    "Optimization",
]

setup_args["platforms"] = ["Linux"]

setup_args["classifiers"] = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "License :: OSI Approved :: BSD License",
    "Operating System :: POSIX",
    "Operating System :: Unix",
    "Programming Language :: Python",
    "Topic :: Scientific/Engineering",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
] + [("Programming Language :: Python :: %s" % x) for x in "3 3.10 3.11 3.12".split()]

if __name__ == "__main__":
    setup(**setup_args)

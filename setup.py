# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from setuptools import find_packages, setup
from os import path

this_directory = path.abspath(path.dirname(__file__))
with open(path.join(this_directory, "README.MD"), encoding="utf-8") as f:
    long_description = f.read()

install_requires = [
    req_line.strip()
    for req_line in open(path.join(this_directory, "requirements.txt")).readlines()
    if req_line.strip() != ""
    if req_line.strip()[0] != "#"
    if "-e ." not in req_line
]

setup(
    name="arangopy",
    packages=find_packages(include=["arangopy", "arangopy.*"]),
    package_data={"arangopy": ["py.typed"]},
    version="0.1.0",
    license="Apache license 2.0",
    description="A Pythonic client for the ArangoDB HTTP API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=["ArangoDB", "AQL", "database"],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require={
        "test": [
            "blockbuster>=1.5.5",
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-httpserver>=1.0.10",
            "pytest-testdox>=3.1.0",
            "werkzeug",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database :: Front-Ends",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)

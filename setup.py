import os.path
import re

from setuptools import find_packages, setup

try:
    # Import all script providers so that ENTRYPOINTS gets populated.
    from luantictl.scripts import server  # noqa: F401
    from luantictl.scripts.utils import ENTRYPOINTS
except ImportError:
    # Avoid chicken-and-egg dependency requirements during initial installation.
    # This means you need to re-run setup in order to gain per-command entrypoints.
    ENTRYPOINTS = []


HERE = os.path.abspath(os.path.dirname(__file__))

README = os.path.join(HERE, "README.rst")


def version():
    with open(os.path.join(HERE, "debian", "changelog")) as log:
        first = next(l for l in log if l.strip())
    return re.split("[()]", first)[1].replace("~", "")


setup(name="luantictl",
      version=version(),
      description="Idempotent deployment of a Luanti game server in Docker.",
      long_description=open(README).read(),
      long_description_content_type="text/x-rst",
      platforms=["Any"],
      python_requires=">=3.6",
      install_requires=["docopt", "jinja2", "requests"],
      packages=find_packages(exclude=["tests"]),
      package_data={"luantictl": ["templates/*.j2"]},
      entry_points={"console_scripts": ["luantictl=luantictl.scripts.server:main"]
                                       + list(ENTRYPOINTS)})

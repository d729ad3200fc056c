import os

import setuptools

HERE = os.path.dirname(__file__)

setuptools.setup(
    name="parlance",
    version="0.1.0",
    license="COIL",
    description="A trio client core for Twitch-style IRC chat: sessions, typed events, room state.",
    long_description=open(os.path.join(HERE, "description.md")).read(),
    long_description_content_type="text/markdown",
    keywords="chat twitch async trio irc",
    python_requires=">=3.9",
    install_requires=open(os.path.join(HERE, "requirements.txt"))
    .read()
    .strip()
    .split("\n"),
    extras_require={"test": ["pytest", "pytest-trio"]},
    packages=["parlance"],
    classifiers=[
        "Framework :: Trio",
        "Topic :: System :: Networking",
        "Topic :: Software Development :: Libraries",
        "Topic :: Communications :: Chat",
        "Topic :: Communications :: Chat :: Internet Relay Chat",
    ],
)

from setuptools import setup, find_packages
setup(
    name="bodenrichtwert",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "httpx>=0.24",
        "parsel>=1.8",
        "beautifulsoup4>=4.11",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        'console_scripts': [
            'bodenrichtwert=bodenrichtwert.__main__:main'
        ]
    }
)

from setuptools import setup, find_packages

setup(
    name="lexis",
    version="0.1.0",
    packages=find_packages(),
    include_package_data=True,
    python_requires='>=3.8',
    install_requires=[
        'rich>=10.0.0',
        'pyyaml>=6.0.0',
        'psutil>=5.9.0',
        'chardet>=5.0.0',
        'wordfreq>=3.0.0',
        'nltk>=3.8.0',
        'symspellpy>=6.7.0',
        'gliner>=0.2.0',
    ],
    extras_require={
        'onnx': ['onnxruntime>=1.16.0'],
        'dev': [
            'black>=23.0.0',
            'isort>=5.12.0',
            'flake8>=6.0.0',
            'pytest>=7.0.0',
            'pytest-timeout>=2.1.0',
            'pytest-cov>=4.1.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'lexis=lexis.cli.main:main',
        ],
    },
)

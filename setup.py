from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="schooldesk",
    version="1.0.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="SchoolDesk school management backend: documents, exports, payments and notifications",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/schooldesk",
    py_modules=[
        'app',
        'app_config',
        'app_models',
        'build',
        'bulk_export',
        'documents',
        'email_service',
        'email_templates',
        'exceptions',
        'exports',
        'fonts',
        'formatting',
        'gunicorn_config',
        'health',
        'helpers',
        'notifications',
        'payments',
        'paystack_service',
        'places_service',
        'records',
        'routes',
        'security',
        'wsgi',
    ],
    include_package_data=True,
    install_requires=[
        'Flask>=2.3.3',
        'Flask-SQLAlchemy>=3.0.5',
        'python-dotenv>=1.0.0',
        'SQLAlchemy>=2.0.43',
        'Werkzeug>=2.3.7',
        'Jinja2>=3.1.2',
        'gunicorn>=21.2.0',
        'python-jose>=3.3.0',
        'fpdf2>=2.7.6',
        'matplotlib>=3.7.0',
        'openpyxl>=3.1.2',
        'requests>=2.31.0',
    ],
    extras_require={
        'postgres': [
            'psycopg2-binary>=2.9.9',
        ],
        'test': [
            'pytest>=7.4.0',
            'pypdf>=3.17.0',
        ],
    },
    python_requires='>=3.9',
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    entry_points={
        'console_scripts': [
            'schooldesk=wsgi:main',
            'schooldesk-init-db=build:initialize_database',
        ],
    },
)

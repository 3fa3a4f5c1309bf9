from setuptools import setup, find_packages

setup(
    name='kubeprep',
    version='0.1.0',
    packages=find_packages(exclude=['kubeprep.tests']),
    include_package_data=True,
    package_data={
        'kubeprep.modules.kubeadm': ['templates/*.j2'],
    },
    install_requires=[
        'typer[all]',
        'rich',
        'pydantic>=2.0',
        'pyyaml',
        'jinja2',
        'kubernetes',
        'requests',
        'packaging',
        'urllib3',
        'python-dotenv',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'kubeprep=kubeprep.cli:run',
            'install-k8-master=kubeprep.cli:install_master',
            'install-k8-worker=kubeprep.cli:install_worker',
        ]
    },
    description='Kubernetes node bootstrap for Rocky Linux: containerd, kubeadm, Calico',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.8',
)

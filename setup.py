from setuptools import find_packages, setup

package_name = 'vio_scene'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(exclude=['test']),
    install_requires=['setuptools', 'open3d', 'numpy', 'PyYAML'],
    extras_require={'test': ['pytest']},
    python_requires='>=3.8',
    zip_safe=True,
    description='Incremental 3D scene state for visual-inertial odometry visualization',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'vio_scene_viewer = vio_scene.viewer:main',
        ],
    },
)

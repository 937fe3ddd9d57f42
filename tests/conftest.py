import pytest

from scqbf_ts.scqbf.generator import generate_instance, write_instance
from scqbf_ts.scqbf.instance import ScqbfInstance

# n=2; set 0 covers element 1, set 1 covers element 2; A = [[1, 2], [0, 3]]
WORKED_EXAMPLE = """2
1 1
1
2
1 2
3
"""


@pytest.fixture
def worked_instance():
    return ScqbfInstance.from_string(WORKED_EXAMPLE, name="worked")


@pytest.fixture
def random_instance():
    return generate_instance(10, coverage_density=0.25, coef_range=(-10, 10), seed=42, name="rand_n10")


@pytest.fixture
def instance_file(tmp_path, random_instance):
    path = tmp_path / "instances" / f"{random_instance.name}.txt"
    write_instance(random_instance, path)
    return path

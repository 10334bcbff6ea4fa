"""
test_filenames.py - 엔트리 이름 할당 테스트
"""

from src.core.filenames import FilenameAllocator, base_name


class TestFilenameAllocator:
    """FilenameAllocator 테스트."""

    def test_first_request_unchanged(self):
        allocator = FilenameAllocator()

        assert allocator.allocate("a.jpg") == "a.jpg"

    def test_duplicates_get_suffix(self):
        """a.jpg, a.jpg, a.jpg → a.jpg, a_2.jpg, a_3.jpg."""
        allocator = FilenameAllocator()

        names = [allocator.allocate("a.jpg") for _ in range(3)]

        assert names == ["a.jpg", "a_2.jpg", "a_3.jpg"]

    def test_independent_names(self):
        allocator = FilenameAllocator()

        assert allocator.allocate("a.jpg") == "a.jpg"
        assert allocator.allocate("b.jpg") == "b.jpg"
        assert allocator.allocate("a.jpg") == "a_2.jpg"

    def test_no_extension(self):
        allocator = FilenameAllocator()

        allocator.allocate("README")
        assert allocator.allocate("README") == "README_2"

    def test_literal_suffixed_name_not_reused(self):
        """a_2.jpg가 먼저 들어온 경우에도 중복 없음."""
        allocator = FilenameAllocator()

        allocator.allocate("a_2.jpg")
        allocator.allocate("a.jpg")
        second = allocator.allocate("a.jpg")

        assert second == "a_3.jpg"
        assert len(set(allocator.allocated)) == 3

    def test_deterministic_across_instances(self):
        sequence = ["x.cr2", "x.cr2", "y.jpg", "x.cr2"]

        first = FilenameAllocator()
        second = FilenameAllocator()

        assert [first.allocate(n) for n in sequence] == [second.allocate(n) for n in sequence]

    def test_claim_reserves_exact_name(self):
        """claim한 이름은 이후 allocate에서 suffix."""
        allocator = FilenameAllocator()

        assert allocator.claim("a.xmp") is True
        assert allocator.allocate("a.xmp") == "a_2.xmp"

    def test_claim_taken_name_fails(self):
        allocator = FilenameAllocator()
        allocator.allocate("a.xmp")

        assert allocator.claim("a.xmp") is False

    def test_allocated_in_order(self):
        allocator = FilenameAllocator()
        allocator.allocate("b.jpg")
        allocator.allocate("a.jpg")
        allocator.claim("a.xmp")

        assert allocator.allocated == ["b.jpg", "a.jpg", "a.xmp"]


class TestBaseName:
    """base_name 함수 테스트."""

    def test_last_path_component(self):
        assert base_name("projects/trip/raw/IMG_0001.CR2") == "IMG_0001.CR2"

    def test_plain_name(self):
        assert base_name("scan.jpg") == "scan.jpg"

"""
种子推导测试
"""

from tianji.ai.seed import compatibility_seed, fortune_seed, generate_seed


class TestGenerateSeed:

    def test_empty_string_is_zero(self):
        assert generate_seed("") == 0

    def test_known_values(self):
        """与 31 进制滚动哈希一致"""
        assert generate_seed("a") == 97
        assert generate_seed("ab") == 3105
        assert generate_seed("hello") == 99162322
        assert generate_seed("hello world") == 1794106052

    def test_deterministic(self):
        assert generate_seed("张三-1990-01-01-2024-05-20") == generate_seed("张三-1990-01-01-2024-05-20")

    def test_negative_hash_is_folded(self):
        """溢出为负的哈希取绝对值，最小 int32 折叠为 2^31"""
        assert generate_seed("polygenelubricants") == 2 ** 31

    def test_hashes_utf16_code_units(self):
        """辅助平面字符按代理对计算"""
        assert generate_seed("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_result_is_non_negative(self):
        for text in ("天机", "comp-张三-李四", "x" * 500):
            assert 0 <= generate_seed(text) <= 2 ** 31


class TestSeedInputs:

    def test_fortune_seed_input(self):
        assert fortune_seed("张三", "1990-01-01", "2024-05-20") == generate_seed("张三-1990-01-01-2024-05-20")

    def test_fortune_seed_changes_with_date(self):
        assert fortune_seed("张三", "1990-01-01", "2024-05-20") != fortune_seed("张三", "1990-01-01", "2024-05-21")

    def test_compatibility_seed_input(self):
        assert compatibility_seed("张三", "李四") == generate_seed("comp-张三-李四")

    def test_compatibility_seed_is_ordered(self):
        assert compatibility_seed("张三", "李四") != compatibility_seed("李四", "张三")

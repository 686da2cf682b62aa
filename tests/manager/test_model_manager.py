import asyncio
import pytest
import yaml
from pathlib import Path
from unittest.mock import Mock, AsyncMock, patch

from src.models.manager import ModelManager, ConfigError, BatchItem, HEALTH_CHECK_PROMPT
from src.models.providers.base import ModelResponse, InvalidInput, GenerationFailed, ModelError
from src.api.settings import DEFAULT_CONFIG_PATH


VALID_CONFIG = """
providers:
  gemini:
    type: openai
    api_key_env: TEST_PROVIDER_KEY
    settings:
      base_url: "https://example.test/v1"
      timeout: 30

tasks:
  review:
    provider: gemini
    model: "test-model"
    prompt_ref: "review/code@v1"
    params:
      temperature: 0.2
"""


def write_config(tmp_path, content):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(content)
    return config_file


def make_response(content):
    return ModelResponse(content=content, raw=None, meta={"provider": "openai"})


class TestModelManager:
    """Test suite for ModelManager functionality"""

    @pytest.fixture(autouse=True)
    def api_key(self, monkeypatch):
        monkeypatch.setenv("TEST_PROVIDER_KEY", "secret")

    @pytest.fixture
    def valid_config(self, tmp_path):
        return write_config(tmp_path, VALID_CONFIG)

    @pytest.fixture
    def prompts_dir(self, tmp_path):
        """Create a prompts directory with a single review prompt"""
        prompts_dir = tmp_path / "prompts"
        review_prompt = prompts_dir / "review" / "code" / "v1"
        review_prompt.mkdir(parents=True)
        (review_prompt / "system.j2").write_text("You are a code reviewer.")
        (review_prompt / "user.j2").write_text("Review: {{ code }}")
        return prompts_dir

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def manager(self, valid_config, prompts_dir, sleeps):
        async def fake_sleep(seconds):
            sleeps.append(seconds)
        return ModelManager(valid_config, prompts_dir, sleep=fake_sleep)

    @pytest.fixture
    def provider(self, manager):
        """Install a mocked provider so no network calls are made"""
        provider = Mock()
        provider.chat = AsyncMock(return_value=make_response("Looks good."))
        provider.cleanup = AsyncMock()
        manager._providers["gemini"] = provider
        return provider

    # ============ Configuration ============

    def test_initialization_success(self, valid_config, prompts_dir):
        manager = ModelManager(valid_config, prompts_dir)

        assert manager.config_path == Path(valid_config)
        assert manager.prompts is not None
        assert manager._providers == {}
        assert manager._stats == {}
        assert manager.config['tasks']['review']['provider'] == 'gemini'

    def test_initialization_uses_bundled_prompts(self, valid_config):
        manager = ModelManager(valid_config)
        assert manager.prompts.prompts_dir.name == "prompts"
        assert manager.prompts.load_prompt("review/code@v1").version == "v1"

    def test_config_file_not_found(self, tmp_path):
        nonexistent_config = tmp_path / "nonexistent.yaml"

        with pytest.raises(FileNotFoundError) as exc_info:
            ModelManager(nonexistent_config)

        assert "Config not found" in str(exc_info.value)

    def test_config_missing_providers_section(self, tmp_path):
        config_file = write_config(tmp_path, "tasks:\n  review:\n    provider: gemini\n    model: m\n")

        with pytest.raises(ConfigError, match="Config missing 'providers'"):
            ModelManager(config_file)

    def test_config_missing_tasks_section(self, tmp_path):
        config_file = write_config(tmp_path, "providers:\n  gemini:\n    type: openai\n")

        with pytest.raises(ConfigError, match="Config missing 'tasks'"):
            ModelManager(config_file)

    def test_config_invalid_yaml(self, tmp_path):
        config_file = write_config(tmp_path, "providers:\n  gemini: [unclosed list\n")

        with pytest.raises(yaml.YAMLError):
            ModelManager(config_file)

    def test_task_missing_model(self, tmp_path):
        config_file = write_config(tmp_path, """
providers:
  gemini:
    type: openai
tasks:
  review:
    provider: gemini
""")
        with pytest.raises(ConfigError, match="Task 'review' missing model"):
            ModelManager(config_file)

    def test_task_unknown_provider(self, tmp_path):
        config_file = write_config(tmp_path, """
providers:
  gemini:
    type: openai
tasks:
  review:
    provider: elsewhere
    model: m
""")
        with pytest.raises(ConfigError, match="references unknown provider 'elsewhere'"):
            ModelManager(config_file)

    def test_missing_api_key_is_fatal(self, valid_config, monkeypatch):
        monkeypatch.delenv("TEST_PROVIDER_KEY")

        with pytest.raises(ConfigError, match="TEST_PROVIDER_KEY environment variable is required"):
            ModelManager(valid_config)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    # ============ Providers ============

    def test_provider_initialization_openai(self, manager):
        with patch('src.models.manager.OpenAIProvider') as mock_openai:
            provider = manager._get_provider('gemini')

            mock_openai.assert_called_once_with(
                base_url="https://example.test/v1",
                timeout=30,
                api_key="secret",
            )
            assert manager._providers['gemini'] is provider

    def test_bundled_config_targets_gemini_endpoint(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_AI_API_KEY", "gemini-key")
        manager = ModelManager(DEFAULT_CONFIG_PATH)

        with patch('src.models.manager.OpenAIProvider') as mock_openai:
            manager._get_provider('gemini')

        mock_openai.assert_called_once_with(
            base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
            timeout=120,
            api_key="gemini-key",
        )

    def test_provider_caching(self, manager):
        with patch('src.models.manager.OpenAIProvider') as mock_openai:
            provider1 = manager._get_provider('gemini')
            provider2 = manager._get_provider('gemini')

            assert provider1 is provider2
            mock_openai.assert_called_once()

    def test_unknown_provider_error(self, manager):
        with pytest.raises(ValueError, match="Unknown provider: nope"):
            manager._get_provider('nope')

    def test_unknown_provider_type_error(self, tmp_path):
        config_file = write_config(tmp_path, """
providers:
  odd:
    type: unsupported_type
tasks:
  review:
    provider: odd
    model: m
""")
        manager = ModelManager(config_file)

        with pytest.raises(ValueError, match="Unknown provider type: unsupported_type"):
            manager._get_provider('odd')

    # ============ generate ============

    @pytest.mark.asyncio
    async def test_generate_returns_text(self, manager, provider):
        result = await manager.generate("Review this")

        assert result == "Looks good."
        request = provider.chat.call_args[0][0]
        assert request.model == "test-model"
        assert request.params == {"temperature": 0.2}
        assert request.messages == [
            {"role": "system", "content": "You are a code reviewer."},
            {"role": "user", "content": "Review this"},
        ]

    @pytest.mark.asyncio
    async def test_generate_params_override(self, manager, provider):
        await manager.generate("Review this", temperature=0.9, max_tokens=10)

        request = provider.chat.call_args[0][0]
        assert request.params == {"temperature": 0.9, "max_tokens": 10}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", None, 42, ["a list"]])
    async def test_generate_rejects_non_text_prompt(self, manager, provider, prompt):
        with pytest.raises(InvalidInput, match="non-empty string"):
            await manager.generate(prompt)

        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_generate_rejects_long_prompt(self, manager, provider):
        with pytest.raises(InvalidInput, match="30,000 characters"):
            await manager.generate("x" * 30_001)

        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_generate_accepts_prompt_at_limit(self, manager, provider):
        assert await manager.generate("x" * 30_000) == "Looks good."

    @pytest.mark.asyncio
    async def test_generate_wraps_provider_failure(self, manager, provider):
        provider.chat.side_effect = ModelError("quota exhausted")

        with pytest.raises(GenerationFailed) as exc_info:
            await manager.generate("Review this")

        assert str(exc_info.value) == "AI content generation failed: quota exhausted"
        assert isinstance(exc_info.value.__cause__, ModelError)

    @pytest.mark.asyncio
    async def test_generate_unknown_task_wrapped(self, manager, provider):
        with pytest.raises(GenerationFailed, match="Unknown task: reviews") as exc_info:
            await manager.generate("Review this", task="reviews")

        assert isinstance(exc_info.value.__cause__, ValueError)
        provider.chat.assert_not_called()
        assert manager.get_stats("reviews")["successful_calls"] == 0

    @pytest.mark.asyncio
    async def test_generate_logs_rejected_prompt(self, manager, provider, caplog):
        caplog.set_level("ERROR", logger="src.models.manager")

        with pytest.raises(InvalidInput):
            await manager.generate("x" * 30_001)

        assert "Content generation failed" in caplog.text
        assert "prompt_length=30001" in caplog.text

    @pytest.mark.asyncio
    async def test_generate_logs_lengths(self, manager, provider, caplog):
        caplog.set_level("INFO", logger="src.models.manager")

        await manager.generate("Review this")

        assert "prompt_length=11" in caplog.text
        assert "response_length=11" in caplog.text

    @pytest.mark.asyncio
    async def test_stats_tracking(self, manager, provider):
        await manager.generate("one")
        provider.chat.side_effect = ModelError("down")
        with pytest.raises(GenerationFailed):
            await manager.generate("two")

        stats = manager.get_stats("review")
        assert stats["total_calls"] == 2
        assert stats["successful_calls"] == 1
        assert manager.get_stats() == {"review": stats}

    # ============ batch_generate ============

    @pytest.mark.asyncio
    async def test_batch_rejects_empty_prompts(self, manager):
        with pytest.raises(InvalidInput):
            await manager.batch_generate([])

    @pytest.mark.asyncio
    async def test_batch_runs_sequential_windows(self, manager):
        events = []

        async def fake_generate(prompt, task="review"):
            events.append(("start", prompt))
            await asyncio.sleep(0)
            events.append(("end", prompt))
            return f"review of {prompt}"

        manager.generate = fake_generate
        prompts = [f"p{i}" for i in range(7)]

        results = await manager.batch_generate(prompts, concurrency=3)

        assert [item.index for item in results] == list(range(7))
        assert all(item.success for item in results)
        assert results[4].result == "review of p4"

        windows = [prompts[0:3], prompts[3:6], prompts[6:7]]
        for previous, current in zip(windows, windows[1:]):
            last_end = max(events.index(("end", p)) for p in previous)
            first_start = min(events.index(("start", p)) for p in current)
            assert last_end < first_start

        # items inside a window overlap
        assert events[:3] == [("start", "p0"), ("start", "p1"), ("start", "p2")]

    @pytest.mark.asyncio
    async def test_batch_preserves_index_on_failure(self, manager, sleeps):
        async def fake_generate(prompt, task="review"):
            if prompt == "bad":
                raise GenerationFailed("AI content generation failed: nope")
            return prompt.upper()

        manager.generate = fake_generate

        results = await manager.batch_generate(["a", "bad", "c", "d"], concurrency=2)

        assert results == [
            BatchItem(index=0, success=True, result="A"),
            BatchItem(index=1, success=False, error="AI content generation failed: nope"),
            BatchItem(index=2, success=True, result="C"),
            BatchItem(index=3, success=True, result="D"),
        ]

    @pytest.mark.asyncio
    async def test_batch_retries_then_succeeds(self, manager, sleeps):
        calls = []

        async def flaky_generate(prompt, task="review"):
            calls.append(prompt)
            if len(calls) <= 2:
                raise GenerationFailed(f"failure {len(calls)}")
            return "finally"

        manager.generate = flaky_generate

        results = await manager.batch_generate(["p"], retry_attempts=2)

        assert results == [BatchItem(index=0, success=True, result="finally")]
        assert len(calls) == 3
        assert sleeps == [2, 4]

    @pytest.mark.asyncio
    async def test_batch_reports_last_error_after_all_attempts(self, manager, sleeps):
        calls = []

        async def failing_generate(prompt, task="review"):
            calls.append(prompt)
            raise GenerationFailed(f"failure {len(calls)}")

        manager.generate = failing_generate

        results = await manager.batch_generate(["p"], retry_attempts=2)

        assert len(calls) == 3
        assert results[0].success is False
        assert results[0].error == "failure 3"
        assert results[0].result is None
        assert results[0].to_dict() == {"index": 0, "success": False, "result": None, "error": "failure 3"}

    @pytest.mark.asyncio
    async def test_batch_without_retries(self, manager, sleeps):
        failing = AsyncMock(side_effect=GenerationFailed("down"))
        manager.generate = failing

        results = await manager.batch_generate(["a", "b"], retry_attempts=0)

        assert [item.success for item in results] == [False, False]
        assert failing.await_count == 2
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_batch_unknown_task_reported_per_item(self, manager, provider, sleeps):
        results = await manager.batch_generate(["a", "b"], task="reviews")

        assert [item.index for item in results] == [0, 1]
        assert [item.success for item in results] == [False, False]
        assert all("Unknown task: reviews" in item.error for item in results)
        assert sorted(sleeps) == [2, 2, 4, 4]
        provider.chat.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_records_unexpected_errors(self, manager, sleeps):
        manager.generate = AsyncMock(side_effect=[KeyError("model"), "ok"])

        results = await manager.batch_generate(["a", "b"], retry_attempts=0)

        assert results[0].success is False
        assert "model" in results[0].error
        assert results[1] == BatchItem(index=1, success=True, result="ok")

    # ============ health_check / cleanup ============

    @pytest.mark.asyncio
    async def test_health_check_success(self, manager, provider):
        assert await manager.health_check() is True
        request = provider.chat.call_args[0][0]
        assert request.messages[-1]["content"] == HEALTH_CHECK_PROMPT

    @pytest.mark.asyncio
    async def test_health_check_empty_response(self, manager, provider):
        provider.chat.return_value = make_response("")
        assert await manager.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_failure(self, manager, provider):
        provider.chat.side_effect = ModelError("unreachable")
        assert await manager.health_check() is False

    @pytest.mark.asyncio
    async def test_session_cleans_up_providers(self, manager, provider):
        async with manager.session() as active:
            assert active is manager

        provider.cleanup.assert_awaited_once()
        assert manager._providers == {}

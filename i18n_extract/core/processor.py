"""
Transform Pipeline
==================

Entry point for rewriting one file. Components (``.vue``) are split into
their template and script blocks. Template and script are planned
separately and spliced back. Every other file goes down the script path.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .codegen import detect_newline
from .compiler_manager import CompilerManager
from .context import PlanningContext
from .exceptions import CompilerError
from .injector import HookConfig
from .key_registry import KeyRegistry
from .patcher import shift_spans, to_change_details
from .script_parser import plugins_for_lang_attr, plugins_for_path
from .script_planner import ScriptProcessor
from .sfc import SfcBlock, assemble_sfc, parse_sfc, script_setup_block
from .template_planner import TemplatePlanner
from .types import ChangeDetail, ExtractedString, UsedExistingKey
from ..utils.config import TransformOptions


@dataclass
class TransformResult:
    code: str
    extracted_strings: List[ExtractedString] = field(default_factory=list)
    used_existing_keys: List[UsedExistingKey] = field(default_factory=list)
    changes: List[ChangeDetail] = field(default_factory=list)
    original: Optional[str] = field(default=None, repr=False)

    @property
    def changed(self) -> bool:
        return self.original is not None and self.code != self.original


class TransformPipeline:
    """Rewrites files with one shared key registry and compiler manager."""

    def __init__(
        self,
        options: Optional[TransformOptions] = None,
        registry: Optional[KeyRegistry] = None,
        compiler_manager: Optional[CompilerManager] = None,
    ):
        self.options = options or TransformOptions()
        self.logger = logging.getLogger(__name__)
        self.registry = registry or KeyRegistry.from_options(self.options)
        self.compiler_manager = compiler_manager or CompilerManager(
            search_paths=self.options.compiler_paths
        )
        self.template_planner = TemplatePlanner(self.compiler_manager)

    def transform(self, code: str, file_path: str = "") -> TransformResult:
        mark = self.registry.mark()
        if file_path.lower().endswith(".vue"):
            new_code, changes = self._transform_component(code, file_path)
        else:
            new_code, changes = self._transform_script(code, file_path)

        extracted, used = self.registry.records_since(mark, file_path)
        if extracted or used:
            self.logger.debug(
                f"{file_path or '<code>'}: {len(extracted)} extracted, {len(used)} existing keys"
            )
        return TransformResult(
            code=new_code,
            extracted_strings=extracted,
            used_existing_keys=used,
            changes=changes,
            original=code,
        )

    # ------------------------------------------------------------------

    def _hook_config(self) -> Optional[HookConfig]:
        options = self.options
        if options.no_import:
            return None
        return HookConfig.from_options(options, options.script_function)

    def _script_changes(self, code: str, block_start: int, spans, file_path: str) -> List[ChangeDetail]:
        if self.options.rewrite_mode != "patch":
            return []
        return to_change_details(code, shift_spans(spans, block_start), file_path)

    def _transform_script(self, code: str, file_path: str) -> Tuple[str, List[ChangeDetail]]:
        ctx = PlanningContext(
            registry=self.registry,
            options=self.options,
            file_path=file_path,
            call_name=self.options.script_function,
        )
        processor = ScriptProcessor(ctx, plugins_for_path(file_path), self._hook_config())
        result = processor.process(code)
        return result.code, self._script_changes(code, 0, result.plan.spans, file_path)

    def _transform_component(self, code: str, file_path: str) -> Tuple[str, List[ChangeDetail]]:
        options = self.options
        doc = parse_sfc(code)
        new_contents: List[Tuple[SfcBlock, str]] = []
        changes: List[ChangeDetail] = []
        appended_script = None

        with self.compiler_manager.batch(options.compiler_version):
            template_needs_hook = False
            template = doc.template
            if template is not None:
                self._prepare_compiler(template)
                ctx = PlanningContext(
                    registry=self.registry,
                    options=options,
                    file_path=file_path,
                    call_name=options.template_function,
                    line_offset=doc.line_offset(template),
                )
                result = self.template_planner.process(template.content, ctx)
                if result.changed:
                    self.logger.debug(f"{file_path}: template rewritten in {result.mode} mode")
                    new_contents.append((template, result.code))
                    changes.extend(
                        to_change_details(code, shift_spans(result.spans, template.start), file_path)
                    )
                template_needs_hook = (
                    result.changed
                    and not options.no_import
                    and options.template_function == options.translation_method
                )

            hook = self._hook_config()
            hook_target = doc.script
            for script in doc.scripts:
                is_target = script is hook_target
                ctx = PlanningContext(
                    registry=self.registry,
                    options=options,
                    file_path=file_path,
                    call_name=options.script_function,
                    line_offset=doc.line_offset(script),
                )
                processor = ScriptProcessor(
                    ctx, plugins_for_lang_attr(script.lang), hook if is_target else None
                )
                result = processor.process(
                    script.content,
                    is_setup=script.is_setup,
                    force_injection=template_needs_hook and is_target,
                )
                if result.changed:
                    new_contents.append((script, result.code))
                    changes.extend(
                        self._script_changes(code, script.start, result.plan.spans, file_path)
                    )
                if not is_target and hook is not None and hook.needs_import and result.plan.call_count:
                    self.logger.warning(
                        f"{file_path}: translation calls added to a second <script> block; "
                        f"{hook.hook_name}() is only injected into the main script block"
                    )

            if hook_target is None and template_needs_hook and hook is not None:
                newline = detect_newline(code)
                body = [hook.import_line()]
                if hook.needs_hook:
                    body.append(hook.hook_statement())
                appended_script = script_setup_block(newline.join(body), newline=newline)
                self.logger.debug(f"{file_path}: added <script setup> for template translations")

        if not new_contents and appended_script is None:
            return code, changes
        return assemble_sfc(doc, new_contents, appended_script), changes

    def _prepare_compiler(self, template: SfcBlock) -> None:
        """Load the markup compiler into the open batch when the template needs it."""
        options = self.options
        if options.template_mode == "regex" or not self.registry.pattern.search(template.content):
            return
        try:
            self.compiler_manager.get_compiler(options.compiler_version)
        except CompilerError as e:
            self.logger.warning(f"Markup compiler unavailable: {e}")

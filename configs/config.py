import os
from typing import Dict, Any, List


def _from_env() -> Dict[str, Any]:
	"""Read every setting from the current environment."""
	return {
		# Build selection
		"BUILD_TYPE": os.getenv("BUILD_TYPE", "daily"),
		"RELEASE_RANGE": os.getenv("RELEASE_RANGE", "latest"),
		"RELEASE_VERSION": os.getenv("RELEASE_VERSION", ""),
		
		# History file
		"OUTPUT_DIR": os.getenv("OUTPUT_DIR", "release-notes"),
		"OUTPUT_FILE": os.getenv("OUTPUT_FILE", "dev-release-notes.json"),
		"HISTORY_POLICY": os.getenv("HISTORY_POLICY", "prepend"),
		"HISTORY_MAX_BUILDS": int(os.getenv("HISTORY_MAX_BUILDS", "50")),
		"HISTORY_ASSET_NAME": os.getenv("HISTORY_ASSET_NAME", "prod-release-notes.json"),
		
		# Commit range and branch resolution
		"WORKFLOW_FILE": os.getenv("WORKFLOW_FILE", "build.yml"),
		"MAIN_BRANCH": os.getenv("MAIN_BRANCH", "main"),
		"DEVELOP_BRANCH": os.getenv("DEVELOP_BRANCH", "develop"),
		"GIT_REMOTE": os.getenv("GIT_REMOTE", "origin"),
		"FALLBACK_COMMIT_WINDOW": int(os.getenv("FALLBACK_COMMIT_WINDOW", "10")),
		# 'contains' (DEFECT anywhere) or 'prefix' (subject starts with defect)
		"DEFECT_MATCH": os.getenv("DEFECT_MATCH", "contains"),
		"TOLERATE_LOOKUP_ERRORS": bool(int(os.getenv("TOLERATE_LOOKUP_ERRORS", "0"))),
		
		# GitHub Configuration
		"GITHUB_API_URL": os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/'),
		"GITHUB_UPLOADS_URL": os.getenv("GITHUB_UPLOADS_URL", "https://uploads.github.com").rstrip('/'),
		"GITHUB_TOKEN": os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN"),
		"GITHUB_REPOSITORY": os.getenv("GITHUB_REPOSITORY", ""),
		"HTTP_TIMEOUT_S": int(os.getenv("HTTP_TIMEOUT_S", "30")),
		
		# Release publishing
		"RELEASE_NOTES_MAX_CHARS": int(os.getenv("RELEASE_NOTES_MAX_CHARS", "125000")),
		"RELEASE_NOTES_LOG": os.getenv("RELEASE_NOTES_LOG", "release-notes.log"),
		"RELEASE_NOTES_DIR": os.getenv("RELEASE_NOTES_DIR", "."),
		
		# Observability
		"METRICS_ROOT": os.getenv("METRICS_ROOT", ".cache/release_notes/metrics"),
		"METRICS_ENABLED": bool(int(os.getenv("METRICS_ENABLED", "1"))),
	}


class Config:
	"""Configuration for the build release notes tooling.
	
	Every setting is a class attribute read from the environment at import
	time. Call reload() after loading a .env file to pick up its values.
	"""
	
	@classmethod
	def reload(cls) -> None:
		for name, value in _from_env().items():
			setattr(cls, name, value)
	
	@classmethod
	def settings(cls) -> List[str]:
		return list(_from_env())
	
	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"api_url": cls.GITHUB_API_URL,
			"uploads_url": cls.GITHUB_UPLOADS_URL,
			"token": cls.GITHUB_TOKEN,
			"repository": cls.GITHUB_REPOSITORY,
			"timeout_s": cls.HTTP_TIMEOUT_S
		}
	
	@classmethod
	def get_branch_config(cls) -> Dict[str, str]:
		return {
			"main_branch": cls.MAIN_BRANCH,
			"develop_branch": cls.DEVELOP_BRANCH,
			"remote": cls.GIT_REMOTE,
		}
	
	@classmethod
	def get_history_config(cls) -> Dict[str, Any]:
		"""Get history file location and bounding policy."""
		return {
			"path": os.path.join(cls.OUTPUT_DIR, cls.OUTPUT_FILE),
			"policy": cls.HISTORY_POLICY,
			"max_builds": cls.HISTORY_MAX_BUILDS,
			"asset_name": cls.HISTORY_ASSET_NAME,
		}
	
	@classmethod
	def get_release_config(cls) -> Dict[str, Any]:
		return {
			"max_chars": cls.RELEASE_NOTES_MAX_CHARS,
			"log_name": cls.RELEASE_NOTES_LOG,
			"log_dir": cls.RELEASE_NOTES_DIR,
		}
	
	@classmethod
	def observability(cls) -> Dict[str, Any]:
		return {
			"metrics_root": cls.METRICS_ROOT,
			"metrics_enabled": cls.METRICS_ENABLED,
		}


Config.reload()

# Services package init
"""
PhotoFiler Backend: Services Layer
====================================

Service Inventory:
    - naming:               label sanitization, file names, label suggestions
    - file_service:         photo validation and async file operations
    - platform:             PlatformCapabilities, PermissionGateway
    - documents:            DocumentProvider (content:// directory API)
    - media_library:        MediaLibrary (gallery assets and albums)
    - handle_store:         DirectoryHandleStore (persisted root folder)
    - permission_verifier:  live-access probe for directory references
    - backend_resolver:     ordered backend options and limitations
    - interaction:          BackendChooser, FolderPicker, ShareSheet
    - strategies/:          one SaveStrategy per backend
    - save_orchestrator:    the save state machine and fallback chain
"""
